"""
Medicine lookup for free-text chatbot queries.

Three tiers, each tried only when the previous one found nothing:
1. Close name match (normalized similarity against name/generic/brand)
2. Case-insensitive substring on name, generic, brand, category, description
3. Any query word longer than 2 characters inside name, generic or brand
"""
import re
import logging
from typing import List, Optional

from sqlalchemy import or_, func, literal
from sqlalchemy.orm import Session

from app.models.medicine import Medicine

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
ALTERNATIVES_LIMIT = 5
CLOSE_MATCH_CONFIDENCE = 0.9

# Filler words dropped before comparing names
NOISE_WORDS = {
    "do", "you", "have", "is", "there", "any", "in", "stock", "available",
    "please", "give", "need", "want", "the", "a", "an", "of", "for",
    "tablet", "tablets", "strip", "strips", "bottle", "bottles",
}


def normalize_medicine_text(text: str) -> str:
    """
    Lowercase, strip punctuation and filler words.

    Examples:
        "Do you have Dolo-650?" -> "dolo 650"
        "PARACETAMOL tablets" -> "paracetamol"
    """
    if not text:
        return ""

    text = text.lower().strip()
    text = re.sub(r"[^\w\s]", " ", text)
    words = [w for w in text.split() if w not in NOISE_WORDS]
    return " ".join(words)


def match_confidence(query: str, medicine_name: str) -> float:
    """
    Score how closely a query names a medicine.

    Returns: 0.0 to 1.0
    - 1.0 exact match after normalization
    - 0.95 / 0.92 one contains the other
    - 0.7 to 0.9 word overlap
    - below 0.6 no shared words
    """
    query_norm = normalize_medicine_text(query)
    name_norm = normalize_medicine_text(medicine_name)

    if not query_norm or not name_norm:
        return 0.0

    if query_norm == name_norm:
        return 1.0

    if query_norm in name_norm:
        return 0.95
    if name_norm in query_norm:
        return 0.92

    query_words = set(query_norm.split())
    name_words = set(name_norm.split())
    intersection = query_words & name_words
    union = query_words | name_words

    jaccard = len(intersection) / len(union) if union else 0.0

    if intersection:
        return min(0.7 + (jaccard * 0.2), 0.95)

    return jaccard * 0.6


def _best_confidence(query: str, medicine: Medicine) -> float:
    names = [medicine.name, medicine.generic_name, medicine.brand_name]
    return max((match_confidence(query, n) for n in names if n), default=0.0)


def _active(db: Session):
    return db.query(Medicine).filter(Medicine.is_active.is_(True))


def close_match_candidates(db: Session, query: str) -> List[Medicine]:
    """
    Active medicines whose name, generic or brand shares text with the query
    in either direction. Only these can score as a close match.
    """
    norm = normalize_medicine_text(query)
    if not norm:
        return []
    clauses = []
    for column in (Medicine.name, Medicine.generic_name, Medicine.brand_name):
        clauses.extend(column.ilike(f"%{word}%") for word in norm.split())
        clauses.append(literal(norm).contains(func.lower(column)))
    return _active(db).filter(or_(*clauses)).all()


def search_medicines(db: Session, query: str, limit: int = SEARCH_LIMIT) -> List[Medicine]:
    term = query.strip().lower()
    if not term:
        return []

    # Tier 1: close name matches, best first
    scored = []
    for medicine in close_match_candidates(db, term):
        score = _best_confidence(term, medicine)
        if score >= CLOSE_MATCH_CONFIDENCE:
            scored.append((score, medicine))
    if scored:
        scored.sort(key=lambda pair: (-pair[0], pair[1].name))
        results = [m for _, m in scored[:limit]]
        logger.debug(f"Medicine search '{term}': {len(results)} close matches")
        return results

    # Tier 2: substring on descriptive fields
    pattern = f"%{term}%"
    results = (
        _active(db)
        .filter(or_(
            Medicine.name.ilike(pattern),
            Medicine.generic_name.ilike(pattern),
            Medicine.brand_name.ilike(pattern),
            Medicine.category.ilike(pattern),
            Medicine.description.ilike(pattern),
        ))
        .limit(limit)
        .all()
    )
    if results:
        logger.debug(f"Medicine search '{term}': {len(results)} substring matches")
        return results

    # Tier 3: individual words
    words = [w for w in term.split() if len(w) > 2]
    if not words:
        return []
    clauses = []
    for word in words:
        wp = f"%{word}%"
        clauses.extend([
            Medicine.name.ilike(wp),
            Medicine.generic_name.ilike(wp),
            Medicine.brand_name.ilike(wp),
        ])
    results = _active(db).filter(or_(*clauses)).limit(limit).all()
    logger.debug(f"Medicine search '{term}': {len(results)} word matches")
    return results


def find_alternatives(db: Session, query: str, limit: int = ALTERNATIVES_LIMIT) -> List[Medicine]:
    """Other in-stock medicines in the category of the first medicine the query names."""
    pattern = f"%{query.strip()}%"
    medicine: Optional[Medicine] = (
        _active(db)
        .filter(or_(
            Medicine.name.ilike(pattern),
            Medicine.generic_name.ilike(pattern),
            Medicine.brand_name.ilike(pattern),
        ))
        .order_by(Medicine.id.asc())
        .first()
    )
    if not medicine:
        return []

    return (
        _active(db)
        .filter(
            Medicine.category == medicine.category,
            Medicine.id != medicine.id,
            Medicine.quantity > 0,
        )
        .order_by(Medicine.id.asc())
        .limit(limit)
        .all()
    )


def sample_categories(db: Session, sample_size: int = 5) -> List[str]:
    rows = _active(db).order_by(Medicine.id.asc()).limit(sample_size).all()
    seen = []
    for m in rows:
        if m.category not in seen:
            seen.append(m.category)
    return seen
