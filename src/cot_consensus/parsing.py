"""Parsing utilities for chain-of-thought model outputs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext

ANSWER_RE = re.compile(r"ANSWER:\s*([0-9]+(?:\.[0-9]+)?)", flags=re.IGNORECASE)

# Canonical answers keep at most four fractional digits.
ANSWER_QUANTUM = Decimal("0.0001")


@dataclass(frozen=True)
class AnswerParse:
    raw: str | None
    answer: str | None
    source: str


def extract_answer(text: str) -> str | None:
    """Return the numeric token following the first ``ANSWER:`` marker."""

    if not text:
        return None

    match = ANSWER_RE.search(text)
    if match is None:
        return None
    return match.group(1)


def normalize_answer(value: str | None) -> str | None:
    """Render a numeric answer in canonical form ("42.00" -> "42")."""

    if value is None:
        return None

    try:
        number = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return None

    if not number.is_finite():
        return None
    if number.is_zero():
        return "0"

    with localcontext() as ctx:
        # Room for every integer digit plus the four kept fractional digits.
        ctx.prec = max(28, number.adjusted() + 6)
        try:
            number = number.quantize(ANSWER_QUANTUM, rounding=ROUND_HALF_EVEN)
        except InvalidOperation:
            return None
        if number.is_zero():
            return "0"
        # format(..., "f") keeps "100" from collapsing to "1E+2".
        return format(number.normalize(), "f")


def parse_answer_from_text(text: str) -> AnswerParse:
    """Extract and normalize the final answer from model output."""

    raw = extract_answer(text)
    if raw is None:
        return AnswerParse(raw=None, answer=None, source="none")

    answer = normalize_answer(raw)
    if answer is None:
        return AnswerParse(raw=raw, answer=None, source="none")

    return AnswerParse(raw=raw, answer=answer, source="answer_tag")
