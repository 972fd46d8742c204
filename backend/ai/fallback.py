"""
Templated chatbot replies.

Used when no completion client is configured or the completion has no
usable text. Built only from search results, so they are always accurate.
"""
import logging
from typing import Sequence

from app.models.medicine import Medicine

logger = logging.getLogger(__name__)


def match_reply(query: str, matches: Sequence[Medicine]) -> str:
    top = matches[0]
    reply = f'I found {len(matches)} medicine(s) matching "{query}".\n\n'
    reply += f"**{top.name}** ({top.generic_name})\n"
    reply += f"• Stock: {top.quantity} {top.unit or 'units'}\n"
    reply += f"• Price: ₹{float(top.price_per_unit):.2f} per unit\n"
    if top.is_expired:
        reply += "• Status: ⚠️ EXPIRED\n"
    else:
        reply += f"• Expires: {top.days_until_expiry} days\n"

    others = [m.name for m in matches[1:4]]
    if others:
        reply += f"\nOther matches: {', '.join(others)}"
    return reply


def alternatives_reply(query: str, alternatives: Sequence[Medicine]) -> str:
    lines = "\n".join(
        f"• {a.name} ({a.generic_name}) - ₹{float(a.price_per_unit):.2f}"
        for a in alternatives
    )
    return (
        f'I couldn\'t find an exact match for "{query}", '
        f"but here are some alternatives in the same category:\n{lines}"
    )


def no_result_reply(query: str, sample_categories: Sequence[str]) -> str:
    if sample_categories:
        return (
            f'I couldn\'t find any medicines matching "{query}".\n\n'
            f"Here are some available categories: {', '.join(sample_categories)}.\n\n"
            "Try searching by medicine name, category, or contact the pharmacy staff for assistance."
        )
    return (
        f'I couldn\'t find any medicines matching "{query}". '
        "Please try a different search term, check the available categories, "
        "or contact the pharmacy staff for assistance."
    )


def templated_reply(
    query: str,
    matches: Sequence[Medicine],
    alternatives: Sequence[Medicine],
    sample_categories: Sequence[str] = (),
) -> str:
    if matches:
        return match_reply(query, matches)
    if alternatives:
        return alternatives_reply(query, alternatives)
    logger.debug(f"No chatbot matches for query: {query[:50]}")
    return no_result_reply(query, sample_categories)
