"""
Deterministic answer parsers, one per validation contract.

These are the fail-safe strategy behind the extraction adapter: keyword and
regex heuristics matched case-insensitively on word boundaries. Each parser
takes the raw utterance and returns an ExtractionResult.
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Pattern, Tuple

from core.models import EMAIL_DECLINED, ExtractionResult
from graph.nodes import CLARIFICATIONS
from graph.schema import ContractType


def _words(*phrases: str) -> Pattern[str]:
    body = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in phrases)
    return re.compile(rf"\b(?:{body})\b", re.IGNORECASE)


def _normalize(text: str) -> str:
    return (text or "").replace("’", "'").replace("‘", "'").strip()


def _number(raw: str) -> float:
    return float(raw.replace("$", "").replace(",", ""))


def _compact(value: float) -> Any:
    return int(value) if float(value).is_integer() else value


def _invalid(contract: ContractType) -> ExtractionResult:
    return ExtractionResult.unclear(CLARIFICATIONS[contract], source="heuristic")


# ============================================================================
# Boolean
# ============================================================================

POSITIVE_RE = _words("yes", "yeah", "sure", "definitely", "absolutely", "yep", "yup",
                     "correct", "right", "true", "i do", "i am", "i have")
NEGATIVE_RE = _words("no", "nope", "not really", "never", "nah", "negative", "not interested",
                     "i don't", "i do not", "i haven't", "not yet")


def parse_boolean(text: str) -> ExtractionResult:
    """yes / no; negatives win when both match ("not really sure")"""
    text = _normalize(text)
    if NEGATIVE_RE.search(text):
        return ExtractionResult.valid("no")
    if POSITIVE_RE.search(text):
        return ExtractionResult.valid("yes")
    return _invalid(ContractType.BOOLEAN)


# ============================================================================
# Scale 1-10
# ============================================================================

SCALE_DIGIT_RE = re.compile(r"\b(10|[1-9])\b")

# Checked in order; longer phrases first
SCALE_WORDS: List[Tuple[Pattern[str], int]] = [
    (_words("excellent", "perfect", "like new"), 10),
    (_words("great"), 9),
    (_words("very good"), 8),
    (_words("good"), 7),
    (_words("decent"), 6),
    (_words("okay", "ok", "fair", "average"), 5),
    (_words("needs work", "needs some work", "needs repairs", "needs some repairs"), 4),
    (_words("poor"), 3),
    (_words("terrible", "very bad", "awful"), 1),
    (_words("bad"), 2),
]


def parse_scale(text: str) -> ExtractionResult:
    text = _normalize(text)
    m = SCALE_DIGIT_RE.search(text)
    if m:
        return ExtractionResult.valid(int(m.group(1)))
    for pattern, score in SCALE_WORDS:
        if pattern.search(text):
            return ExtractionResult.valid(score)
    return _invalid(ContractType.SCALE_1_10)


# ============================================================================
# Currency range
# ============================================================================

NOT_SURE_RE = _words("not sure", "don't know", "dont know", "no idea", "unsure", "haven't decided")

_AMOUNT = r"\$?\s*(\d[\d,]*(?:\.\d+)?)"
_UNIT = r"(?:\s*(thousand|million|k|m)\b)?"
RANGE_RE = re.compile(
    rf"(?:between\s+)?{_AMOUNT}{_UNIT}\s*(?:-|to|and)\s*{_AMOUNT}{_UNIT}",
    re.IGNORECASE,
)
SINGLE_RE = re.compile(
    rf"(?:(?:around|about|approximately|roughly)\s+)?{_AMOUNT}{_UNIT}",
    re.IGNORECASE,
)

UNIT_MULTIPLIERS = {
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "million": 1_000_000,
}


def _scaled(amount: str, unit: Optional[str]) -> int:
    multiplier = UNIT_MULTIPLIERS.get((unit or "").lower(), 1)
    return int(round(_number(amount) * multiplier))


def parse_currency_range(text: str) -> ExtractionResult:
    text = _normalize(text)
    if NOT_SURE_RE.search(text):
        return ExtractionResult.valid({
            'min': None, 'max': None, 'currency': "USD", 'raw': text, 'status': "not_sure",
        })

    m = RANGE_RE.search(text)
    if m:
        low_amount, low_unit, high_amount, high_unit = m.groups()
        # "250 to 300k": the trailing unit covers both ends
        if not low_unit and high_unit:
            low_unit = high_unit
        low = _scaled(low_amount, low_unit)
        high = _scaled(high_amount, high_unit)
        if low > high:
            low, high = high, low
        return ExtractionResult.valid({
            'min': low, 'max': high, 'currency': "USD", 'raw': text, 'status': "specified",
        })

    m = SINGLE_RE.search(text)
    if m:
        value = _scaled(m.group(1), m.group(2))
        return ExtractionResult.valid({
            'min': value, 'max': value, 'currency': "USD", 'raw': text, 'status': "specified",
        })

    return _invalid(ContractType.CURRENCY_RANGE)


# ============================================================================
# Room count
# ============================================================================

NUMBER_WORDS = {
    "one": "1", "two": "2", "three": "3", "four": "4", "five": "5",
    "six": "6", "seven": "7", "eight": "8", "nine": "9", "ten": "10",
}
NUMBER_WORD_RE = re.compile(r"\b(" + "|".join(NUMBER_WORDS) + r")\b", re.IGNORECASE)

_N = r"(\d+(?:\.\d+)?)"
_BED = r"(?:bed(?:room)?s?|br|bd)\b"
_BATH = r"(?:bath(?:room)?s?|ba)\b"
BED_BATH_RE = re.compile(rf"{_N}\s*-?\s*{_BED}\s*(?:and|,|/)?\s*{_N}\s*-?\s*{_BATH}", re.IGNORECASE)
SLASH_RE = re.compile(rf"\b{_N}\s*/\s*{_N}\b")
PAIR_RE = re.compile(rf"^\s*{_N}\s+{_N}\s*$")
BED_ONLY_RE = re.compile(rf"{_N}\s*-?\s*{_BED}", re.IGNORECASE)
BATH_ONLY_RE = re.compile(rf"{_N}\s*-?\s*(?:full\s+|half\s+)?{_BATH}", re.IGNORECASE)
ANY_NUMBER_RE = re.compile(_N)


def _rooms(bedrooms: Optional[str], bathrooms: Optional[str], raw: str) -> ExtractionResult:
    return ExtractionResult.valid({
        'bedrooms': _compact(float(bedrooms)) if bedrooms is not None else None,
        'bathrooms': _compact(float(bathrooms)) if bathrooms is not None else None,
        'raw': raw,
    })


def parse_room_count(text: str) -> ExtractionResult:
    raw = _normalize(text)
    text = NUMBER_WORD_RE.sub(lambda m: NUMBER_WORDS[m.group(1).lower()], raw)

    for pattern in (BED_BATH_RE, SLASH_RE, PAIR_RE):
        m = pattern.search(text)
        if m:
            return _rooms(m.group(1), m.group(2), raw)

    bed = BED_ONLY_RE.search(text)
    bath = BATH_ONLY_RE.search(text)
    if bed or bath:
        return _rooms(bed.group(1) if bed else None, bath.group(1) if bath else None, raw)

    numbers = ANY_NUMBER_RE.findall(text)
    if len(numbers) >= 2:
        return _rooms(numbers[0], numbers[1], raw)

    return _invalid(ContractType.ROOM_COUNT)


# ============================================================================
# Categories
# ============================================================================

NO_TENANT_RE = _words("no tenant", "no tenants", "no renters", "not rented", "not renting", "not leased",
                      "don't rent", "do not rent")
TENANT_RE = _words("tenant", "tenants", "renter", "renters", "rent", "rented", "renting", "leased")
OWNER_RE = _words("owner", "myself", "me", "i live", "we live", "occupied by me", "my home",
                  "vacant", "empty")

ANNUAL_RE = _words("annual", "annually", "year", "yearly", "12 month", "12-month", "one year")
MONTHLY_RE = _words("month", "monthly", "month-to-month", "month to month", "mtm")


def parse_occupancy(text: str) -> ExtractionResult:
    """tenant / owner; vacant and empty count as not tenant-occupied"""
    text = _normalize(text)
    if NO_TENANT_RE.search(text):
        return ExtractionResult.valid("owner")
    if TENANT_RE.search(text):
        return ExtractionResult.valid("tenant")
    if OWNER_RE.search(text):
        return ExtractionResult.valid("owner")
    return _invalid(ContractType.OCCUPANCY)


def parse_lease_type(text: str) -> ExtractionResult:
    text = _normalize(text)
    if ANNUAL_RE.search(text):
        return ExtractionResult.valid("annual")
    if MONTHLY_RE.search(text):
        return ExtractionResult.valid("monthly")
    return _invalid(ContractType.LEASE_TYPE)


# ============================================================================
# Timeframe
# ============================================================================

def parse_timeframe(text: str) -> ExtractionResult:
    """Any answer longer than two characters; dates are kept verbatim"""
    text = _normalize(text)
    if len(text) > 2:
        return ExtractionResult.valid(text)
    return _invalid(ContractType.DATE_OR_TIMEFRAME)


# ============================================================================
# Email
# ============================================================================

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
DECLINE_RE = _words("no", "none", "don't have", "dont have", "prefer not", "skip")


def parse_email(text: str) -> ExtractionResult:
    text = _normalize(text)
    m = EMAIL_RE.search(text)
    if m:
        return ExtractionResult.valid(m.group(0).lower())
    if DECLINE_RE.search(text):
        return ExtractionResult.valid(EMAIL_DECLINED)
    return _invalid(ContractType.EMAIL_OR_DECLINED)


# ============================================================================
# Free text
# ============================================================================

def parse_free_text(text: str) -> ExtractionResult:
    text = _normalize(text)
    if len(text) > 2:
        return ExtractionResult.valid(text)
    return _invalid(ContractType.FREE_TEXT)
