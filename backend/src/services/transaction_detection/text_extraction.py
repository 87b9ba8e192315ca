from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from src.schemas.detection import TransactionDirection
from src.services.transaction_detection.detection_rules import (
    MERCHANT_MAX_LENGTH,
    MERCHANT_MIN_LENGTH,
    MERCHANT_STOPWORDS,
)


def parse_decimal(raw: str) -> Optional[Decimal]:
    """Strip thousands separators and return a finite Decimal, or None."""
    try:
        value = Decimal(raw.replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def first_amount(regexes: Iterable[re.Pattern], text: str) -> Optional[Decimal]:
    for regex in regexes:
        match = regex.search(text)
        if match:
            amount = parse_decimal(match.group(1))
            if amount is not None and amount > 0:
                return amount
    return None


def has_amount(regexes: Iterable[re.Pattern], text: str) -> bool:
    return any(regex.search(text) for regex in regexes)


def contains_any(text_lower: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text_lower for keyword in keywords)


def detect_direction(text_lower: str, keyword_map: Dict[str, List[str]]) -> Optional[TransactionDirection]:
    # Credit vocabulary first
    if contains_any(text_lower, keyword_map["credit"]):
        return TransactionDirection.CREDIT
    if contains_any(text_lower, keyword_map["debit"]):
        return TransactionDirection.DEBIT
    return None


def first_group(regex: re.Pattern, text: str) -> Optional[str]:
    match = regex.search(text)
    return match.group(1) if match else None


def first_merchant(regexes: Iterable[re.Pattern], text: str) -> Optional[str]:
    for regex in regexes:
        match = regex.search(text)
        if not match or not match.group(1):
            continue
        merchant = match.group(1).strip()
        if not MERCHANT_MIN_LENGTH <= len(merchant) <= MERCHANT_MAX_LENGTH:
            continue
        if merchant.lower() in MERCHANT_STOPWORDS:
            continue
        return merchant
    return None


def join_parts(parts: Iterable[Optional[str]], separator: str = " ") -> str:
    return separator.join(part for part in parts if part)
