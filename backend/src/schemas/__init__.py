"""
Schemas Package

This package contains Pydantic models and schemas for the application.
"""

from .detection import (
    DetectedTransaction,
    DetectionSettings,
    DetectionSnapshot,
    DetectionState,
    MonitoredApp,
    ParsedBankTransaction,
    ParsedUpiTransaction,
    RawNotification,
    RawSms,
    TransactionDirection,
    TransactionDraft,
    TransactionKind,
    TransactionSource,
)

__all__ = [
    # Raw OS records
    "RawNotification",
    "RawSms",

    # Parser outputs
    "ParsedBankTransaction",
    "ParsedUpiTransaction",

    # Detection
    "DetectedTransaction",
    "DetectionSettings",
    "DetectionSnapshot",
    "DetectionState",
    "MonitoredApp",
    "TransactionDirection",
    "TransactionDraft",
    "TransactionKind",
    "TransactionSource",
]
