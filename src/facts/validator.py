"""Schema enforcement for candidate facts returned by the extractor.

Pure functions: nothing here touches storage or raises on bad input.
"""

import math

from shared_types import FactType

from .models import BatchValidation, CandidateFact, InvalidFact, ValidationResult

MAX_KEY_LENGTH = 255
DEFAULT_CONFIDENCE = 0.5

VALID_FACT_TYPES = {t.value for t in FactType}

_DEFAULT_POLARITY = {
    FactType.PREFERENCE: 1,
    FactType.DISLIKE: -1,
    FactType.RISK: -1,
}


def default_polarity(fact_type: str) -> int:
    return _DEFAULT_POLARITY.get(fact_type, 0)


def normalize_polarity(value) -> int:
    """Clamp to -1/0/+1. Anything that is not a number becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if number >= 1:
        return 1
    if number <= -1:
        return -1
    return 0


def _parse_confidence(value) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0 or number > 1:
        return None
    return number


def validate_fact(raw) -> ValidationResult:
    """Check one raw candidate and return its sanitized form.

    ``sanitized`` is filled even for invalid input so callers can log what
    the oracle sent.
    """
    if not isinstance(raw, dict):
        return ValidationResult(valid=False, errors=["fact must be an object"])

    errors: list[str] = []
    sanitized: dict = {}

    fact_type = raw.get("fact_type")
    if not isinstance(fact_type, str) or fact_type not in VALID_FACT_TYPES:
        errors.append(f"invalid fact_type: {fact_type!r}")
    sanitized["fact_type"] = fact_type

    fact_key = raw.get("fact_key")
    if not isinstance(fact_key, str) or not fact_key.strip():
        errors.append("fact_key must be a non-empty string")
        sanitized["fact_key"] = fact_key
    else:
        sanitized["fact_key"] = fact_key.strip()[:MAX_KEY_LENGTH]

    if raw.get("confidence") is None:
        sanitized["confidence"] = DEFAULT_CONFIDENCE
    else:
        confidence = _parse_confidence(raw["confidence"])
        if confidence is None:
            errors.append(f"confidence out of range: {raw['confidence']!r}")
            sanitized["confidence"] = DEFAULT_CONFIDENCE
        else:
            sanitized["confidence"] = confidence

    if raw.get("polarity") is None:
        sanitized["polarity"] = default_polarity(fact_type) if isinstance(fact_type, str) else 0
    else:
        sanitized["polarity"] = normalize_polarity(raw["polarity"])

    evidence = raw.get("evidence")
    if not isinstance(evidence, str) or not evidence.strip():
        errors.append("evidence must be a non-empty string")
        sanitized["evidence"] = evidence
    else:
        sanitized["evidence"] = evidence.strip()

    sanitized["action"] = raw.get("action")
    sanitized["invalidate_key"] = raw.get("invalidate_key")

    return ValidationResult(valid=not errors, errors=errors, sanitized=sanitized)


def validate_facts(items) -> BatchValidation:
    """Split a batch into sanitized candidates and rejects."""
    batch = BatchValidation()
    if not isinstance(items, list):
        batch.invalid.append(InvalidFact(index=0, raw=items, errors=["expected a list of facts"]))
        return batch

    for index, raw in enumerate(items):
        result = validate_fact(raw)
        if not result.valid:
            batch.invalid.append(InvalidFact(index=index, raw=raw, errors=result.errors))
            continue
        s = result.sanitized
        invalidate_key = s["invalidate_key"]
        batch.valid.append(
            CandidateFact(
                fact_type=FactType(s["fact_type"]),
                fact_key=s["fact_key"],
                polarity=s["polarity"],
                confidence=s["confidence"],
                evidence=s["evidence"],
                action=s["action"] if isinstance(s["action"], str) else None,
                invalidate_key=invalidate_key.strip() if isinstance(invalidate_key, str) else None,
            )
        )
    return batch


def deduplicate_facts(facts: list[CandidateFact]) -> list[CandidateFact]:
    """Keep the highest-confidence candidate per (type, lowercased key).

    On equal confidence the first one seen wins. Output keeps first-seen order.
    """
    best: dict[tuple[str, str], CandidateFact] = {}
    for fact in facts:
        current = best.get(fact.dedup_key)
        if current is None or fact.confidence > current.confidence:
            best[fact.dedup_key] = fact
    return list(best.values())
