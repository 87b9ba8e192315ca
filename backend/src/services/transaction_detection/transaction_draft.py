from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.schemas.detection import (
    DetectedTransaction,
    TransactionDraft,
    TransactionKind,
    TransactionSource,
)

DEFAULT_INCOME_CATEGORY = "other"
DEFAULT_EXPENSE_CATEGORY = "shopping"


def _match_account(accounts: List[Dict[str, Any]], account_number: Optional[str]) -> str:
    if not account_number:
        return ""
    for account in accounts:
        if account_number in str(account.get("name") or ""):
            return str(account.get("id") or "")
    return ""


def build_transaction_draft(
    detected: DetectedTransaction,
    accounts: Optional[List[Dict[str, Any]]] = None,
) -> TransactionDraft:
    """Pre-fill a finance entry from a detection so the user only has to confirm it."""
    is_income = detected.kind == TransactionKind.INCOME
    local_time = detected.timestamp.astimezone()

    if detected.source == TransactionSource.NOTIFICATION:
        origin = detected.source_app or "UPI notification"
    else:
        origin = "bank SMS"

    return TransactionDraft(
        type=TransactionKind.INCOME if is_income else TransactionKind.EXPENSE,
        amount=detected.amount,
        category=DEFAULT_INCOME_CATEGORY if is_income else DEFAULT_EXPENSE_CATEGORY,
        description=(detected.merchant or "").strip(),
        date=local_time.date().isoformat(),
        time=local_time.strftime("%H:%M:%S"),
        account_id=_match_account(accounts or [], detected.account_number),
        notes=f"Auto-detected from {origin}",
    )
