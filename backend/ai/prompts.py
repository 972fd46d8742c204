"""System prompt for the inventory chatbot."""
from typing import Sequence

from app.models.medicine import Medicine

SYSTEM_PREAMBLE = (
    "You are a helpful pharmaceutical inventory assistant. "
    "Answer questions about medicine availability, alternatives, and usage. "
    "Be concise and accurate. Only use the inventory data below; "
    "if something is not listed, say so.\n\n"
)


def describe_medicine(medicine: Medicine) -> str:
    line = (
        f"- {medicine.name} ({medicine.generic_name}): "
        f"Stock: {medicine.quantity} {medicine.unit or 'units'}, "
        f"Price: ₹{float(medicine.price_per_unit):.2f}, "
    )
    if medicine.is_expired:
        return line + "EXPIRED"
    return line + f"Expires in {medicine.days_until_expiry} days"


def build_system_prompt(
    matches: Sequence[Medicine],
    alternatives: Sequence[Medicine],
) -> str:
    prompt = SYSTEM_PREAMBLE

    if matches:
        prompt += "Available medicines matching the query:\n"
        prompt += "\n".join(describe_medicine(m) for m in matches) + "\n"

    if alternatives:
        prompt += "\nAlternative medicines:\n"
        prompt += "\n".join(
            f"- {a.name} ({a.generic_name}): ₹{float(a.price_per_unit):.2f}"
            for a in alternatives
        ) + "\n"

    if not matches and not alternatives:
        prompt += "No medicines found matching the query."

    return prompt
