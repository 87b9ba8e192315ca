"""
Shared fixtures for transaction detection tests.

Device bridges are replaced with in-memory fakes so adapters and the store
can be driven without an Android host.
"""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add the backend directory to Python path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from src.schemas.detection import DetectedTransaction, TransactionKind, TransactionSource
from src.services.transaction_detection.notification_listener import NotificationListener
from src.services.transaction_detection.platform import (
    PERMISSION_AUTHORIZED,
    PERMISSION_DENIED,
    NotificationAccessBridge,
    SmsInboxBridge,
    SmsReadError,
)
from src.services.transaction_detection.sms_reader import SmsReader
from src.services.transaction_detection.state_storage import InMemoryStateStorage
from src.services.transaction_detection.store import TransactionDetectionStore

BASE_TIME = datetime(2025, 1, 5, 10, 0, tzinfo=timezone.utc)


def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class FakeClock:
    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeSmsInbox(SmsInboxBridge):
    available = True

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, granted: bool = True):
        self.rows = rows or []
        self.granted = granted
        self.fail = False
        self.calls: List[Dict[str, Any]] = []
        self.permission_requests = 0
        self.on_list: Optional[Callable[[], None]] = None

    async def check_permission(self) -> bool:
        return self.granted

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    async def list_messages(self, max_count: int, min_date_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        self.calls.append({"max_count": max_count, "min_date_ms": min_date_ms})
        if self.on_list is not None:
            self.on_list()
        if self.fail:
            raise SmsReadError("inbox unavailable")
        rows = [r for r in self.rows if min_date_ms is None or r["date"] >= min_date_ms]
        return rows[:max_count]


class FakeNotificationAccess(NotificationAccessBridge):
    available = True

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.handler = None
        self.add_calls = 0
        self.remove_calls = 0
        self.permission_requests = 0

    async def get_permission_status(self) -> str:
        return PERMISSION_AUTHORIZED if self.granted else PERMISSION_DENIED

    async def request_permission(self) -> None:
        self.permission_requests += 1

    def add_listener(self, handler) -> None:
        self.add_calls += 1
        self.handler = handler

    def remove_listener(self) -> None:
        self.remove_calls += 1
        self.handler = None

    def emit(self, payload: Dict[str, Any]) -> None:
        if self.handler is not None:
            self.handler(payload)


def sms_row(sms_id: int, address: str, body: str, moment: datetime) -> Dict[str, Any]:
    return {"_id": sms_id, "address": address, "body": body, "date": to_ms(moment), "read": 0}


def make_transaction(
    transaction_id: str,
    amount: str = "100",
    moment: datetime = BASE_TIME,
    reference_id: Optional[str] = None,
    kind: TransactionKind = TransactionKind.EXPENSE,
    source: TransactionSource = TransactionSource.NOTIFICATION,
) -> DetectedTransaction:
    return DetectedTransaction(
        id=transaction_id,
        source=source,
        source_app="PhonePe" if source == TransactionSource.NOTIFICATION else None,
        kind=kind,
        amount=Decimal(amount),
        reference_id=reference_id,
        timestamp=moment,
        raw_text=f"₹{amount} paid",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sms_inbox():
    return FakeSmsInbox()


@pytest.fixture
def notification_access():
    return FakeNotificationAccess()


@pytest.fixture
def sms_reader(sms_inbox, clock):
    return SmsReader(sms_inbox, clock=clock)


@pytest.fixture
def notification_listener(notification_access):
    return NotificationListener(notification_access)


@pytest.fixture
def store(sms_reader, notification_listener):
    return TransactionDetectionStore(
        sms_reader=sms_reader,
        notification_listener=notification_listener,
        storage=InMemoryStateStorage(),
        sms_watcher=sms_reader.create_watcher(interval_seconds=3600),
    )
