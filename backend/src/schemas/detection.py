"""
Transaction Detection Schemas

Pydantic models for raw OS records, parser outputs, detected transactions
and the persisted detection state.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionDirection(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionKind(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionSource(str, enum.Enum):
    NOTIFICATION = "notification"
    SMS = "sms"


class RawNotification(BaseModel):
    """Notification payload as delivered by the OS notification subsystem."""

    model_config = ConfigDict(frozen=True)

    app_package: str = ""
    title: str = ""
    text: str = ""
    sub_text: Optional[str] = None
    big_text: Optional[str] = None
    timestamp_ms: int


class RawSms(BaseModel):
    """Inbox SMS record."""

    model_config = ConfigDict(frozen=True)

    id: str
    sender_address: str = ""
    body: str = ""
    timestamp_ms: int
    is_read: bool = False


class ParsedUpiTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: TransactionDirection
    amount: Decimal = Field(gt=0)
    merchant: Optional[str] = None
    upi_id: Optional[str] = None
    reference_id: Optional[str] = None
    source_app_name: str


class ParsedBankTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: TransactionDirection
    amount: Decimal = Field(gt=0)
    account_last_digits: Optional[str] = None
    bank_name: Optional[str] = None
    merchant: Optional[str] = None
    balance_after: Optional[Decimal] = None
    reference_id: Optional[str] = None


class DetectedTransaction(BaseModel):
    """Canonical detection record handed from a source adapter to the store."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: TransactionSource
    source_app: Optional[str] = None
    kind: TransactionKind
    amount: Decimal = Field(gt=0)
    merchant: Optional[str] = None
    upi_id: Optional[str] = None
    account_number: Optional[str] = None  # last 4 digits
    bank_name: Optional[str] = None
    reference_id: Optional[str] = None
    timestamp: datetime
    raw_text: str
    is_processed: bool = False
    is_dismissed: bool = False

    @field_validator("amount")
    @classmethod
    def _finite_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("amount must be finite")
        return value


class DetectionSettings(BaseModel):
    notification_listener_enabled: bool = True
    sms_reader_enabled: bool = True
    auto_show_prompt: bool = True
    notification_permission_granted: bool = False
    sms_permission_granted: bool = False


class DetectionState(BaseModel):
    """Durable record: what the user already resolved plus their settings."""

    processed_ids: List[str] = Field(default_factory=list)
    dismissed_ids: List[str] = Field(default_factory=list)
    settings: DetectionSettings = Field(default_factory=DetectionSettings)


class DetectionSnapshot(BaseModel):
    pending_transactions: List[DetectedTransaction] = Field(default_factory=list)
    settings: DetectionSettings
    is_listening: bool = False
    is_sms_watching: bool = False


class MonitoredApp(BaseModel):
    key: str
    name: str
    package_name: str


class TransactionDraft(BaseModel):
    """Pre-filled finance entry built from a detection awaiting confirmation."""

    type: TransactionKind
    amount: Decimal
    category: str
    description: str = ""
    date: str  # YYYY-MM-DD
    time: str  # HH:MM:SS
    account_id: str = ""
    payment_method: str = "upi"
    is_recurring: bool = False
    notes: str = ""
