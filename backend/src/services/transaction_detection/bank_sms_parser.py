from __future__ import annotations

import re
from typing import List, Optional

from src.schemas.detection import ParsedBankTransaction, RawSms
from src.services.transaction_detection.detection_rules import (
    BANK_ACCOUNT_REGEX,
    BANK_AMOUNT_REGEXES,
    BANK_BALANCE_REGEX,
    BANK_DIRECTION_KEYWORDS,
    BANK_MERCHANT_REGEXES,
    BANK_NAME_PREFIXES,
    BANK_PROMOTIONAL_KEYWORDS,
    BANK_REFERENCE_REGEX,
    BANK_SENDER_IDS,
    OTP_KEYWORDS,
    all_direction_keywords,
)
from src.services.transaction_detection.text_extraction import (
    contains_any,
    detect_direction,
    first_amount,
    first_group,
    first_merchant,
    has_amount,
    parse_decimal,
)

_NON_LETTERS = re.compile(r"[^A-Za-z]")
_TRANSACTION_KEYWORDS = all_direction_keywords(BANK_DIRECTION_KEYWORDS)


def _normalize_sender(sender: str) -> str:
    return _NON_LETTERS.sub("", sender or "").upper()


class BankSmsParser:
    """Rule-based parser for bank debit/credit SMS alerts."""

    def is_bank_sms(self, sender: str) -> bool:
        normalized = _normalize_sender(sender)
        if not normalized:
            return False
        return any(
            bank_id in normalized or normalized in bank_id
            for bank_id in BANK_SENDER_IDS
        )

    def get_bank_name(self, sender: str) -> Optional[str]:
        normalized = _normalize_sender(sender)
        if not normalized:
            return None
        for prefix, bank in BANK_NAME_PREFIXES.items():
            if prefix in normalized:
                return bank.value
        return None

    def is_transaction_sms(self, sms: RawSms) -> bool:
        if not self.is_bank_sms(sms.sender_address):
            return False

        text = sms.body or ""
        lowered = text.lower()

        if contains_any(lowered, OTP_KEYWORDS):
            return False

        has_keyword = contains_any(lowered, _TRANSACTION_KEYWORDS)
        if contains_any(lowered, BANK_PROMOTIONAL_KEYWORDS) and not has_keyword:
            return False

        return has_keyword and has_amount(BANK_AMOUNT_REGEXES, text)

    def parse(self, sms: RawSms) -> Optional[ParsedBankTransaction]:
        """Classify then extract. Returns None for anything that is not a transaction."""
        if not self.is_transaction_sms(sms):
            return None

        text = sms.body
        amount = first_amount(BANK_AMOUNT_REGEXES, text)
        if amount is None:
            return None

        direction = detect_direction(text.lower(), BANK_DIRECTION_KEYWORDS)
        if direction is None:
            return None

        return ParsedBankTransaction(
            direction=direction,
            amount=amount,
            account_last_digits=first_group(BANK_ACCOUNT_REGEX, text),
            bank_name=self.get_bank_name(sms.sender_address),
            merchant=first_merchant(BANK_MERCHANT_REGEXES, text),
            balance_after=self._extract_balance(text),
            reference_id=first_group(BANK_REFERENCE_REGEX, text),
        )

    def filter_transaction_sms(self, messages: List[RawSms]) -> List[RawSms]:
        return [sms for sms in messages if self.is_transaction_sms(sms)]

    def _extract_balance(self, text: str):
        raw = first_group(BANK_BALANCE_REGEX, text)
        return parse_decimal(raw) if raw else None
