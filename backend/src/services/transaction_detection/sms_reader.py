"""
SMS Reader

Reads bank SMS from the device inbox and parses transaction details.
Requires the READ_SMS permission.

Two capabilities share the permission:
1. On-demand scan of recent messages (get_recent_transactions)
2. SmsWatcher, a polling loop forwarding messages newer than its watermark
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from src.schemas.detection import (
    DetectedTransaction,
    RawSms,
    TransactionDirection,
    TransactionKind,
    TransactionSource,
)
from src.services.transaction_detection.bank_sms_parser import BankSmsParser
from src.services.transaction_detection.platform import SmsInboxBridge, SmsReadError
from src.utils.logger import get_logger

logger = get_logger(__name__)

TransactionCallback = Callable[[DetectedTransaction], Any]
Clock = Callable[[], datetime]

DEFAULT_SCAN_MAX_COUNT = 50
DEFAULT_SCAN_HOURS_BACK = 48.0
DEFAULT_WATCH_INTERVAL_SECONDS = 30.0
DEFAULT_WATCH_HOURS_BACK = 1.0
DEFAULT_WATCH_MAX_COUNT = 20


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def normalize_sms(row: Dict[str, Any]) -> RawSms:
    """Map a native inbox row onto RawSms."""
    now_ms = int(time.time() * 1000)
    raw_id = row.get("_id")
    return RawSms(
        id=str(raw_id) if raw_id is not None else str(now_ms),
        sender_address=row.get("address") or "",
        body=row.get("body") or "",
        timestamp_ms=int(row.get("date") or now_ms),
        is_read=row.get("read") == 1,
    )


def build_sms_transaction(sms: RawSms, parser: Optional[BankSmsParser] = None) -> Optional[DetectedTransaction]:
    """Filter by sender, classify, extract; returns None for non-transactions."""
    parser = parser or BankSmsParser()

    if not parser.is_bank_sms(sms.sender_address):
        return None
    if not parser.is_transaction_sms(sms):
        return None

    parsed = parser.parse(sms)
    if parsed is None:
        return None

    try:
        timestamp = datetime.fromtimestamp(sms.timestamp_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None

    return DetectedTransaction(
        # Inbox ids are stable, so a re-scan yields the same id for the same message
        id=f"sms_{sms.id}",
        source=TransactionSource.SMS,
        kind=TransactionKind.INCOME if parsed.direction == TransactionDirection.CREDIT else TransactionKind.EXPENSE,
        amount=parsed.amount,
        merchant=parsed.merchant,
        account_number=parsed.account_last_digits,
        bank_name=parsed.bank_name,
        reference_id=parsed.reference_id,
        timestamp=timestamp,
        raw_text=sms.body,
    )


class SmsReader:
    def __init__(
        self,
        inbox: SmsInboxBridge,
        parser: Optional[BankSmsParser] = None,
        clock: Clock = utc_now,
    ):
        self.inbox = inbox
        self.parser = parser or BankSmsParser()
        self.clock = clock

    @property
    def available(self) -> bool:
        return self.inbox.available

    async def check_permission(self) -> bool:
        if not self.inbox.available:
            return False
        try:
            return await self.inbox.check_permission()
        except Exception as e:
            logger.error(f"Error checking SMS permission: {e}", exc_info=True)
            return False

    async def request_permission(self) -> bool:
        if not self.inbox.available:
            logger.info("SMS reader is only available on Android")
            return False
        try:
            return await self.inbox.request_permission()
        except Exception as e:
            logger.error(f"Error requesting SMS permission: {e}", exc_info=True)
            return False

    async def read_messages(self, max_count: int = 100, min_date: Optional[datetime] = None) -> List[RawSms]:
        """Read inbox messages. Raises SmsReadError when the native read fails."""
        if not self.inbox.available:
            return []

        if not await self.check_permission():
            logger.info("SMS read permission not granted")
            return []

        min_date_ms = _to_ms(min_date) if min_date else None
        rows = await self.inbox.list_messages(max_count=max_count, min_date_ms=min_date_ms)

        messages: List[RawSms] = []
        for row in rows:
            try:
                messages.append(normalize_sms(row))
            except (ValidationError, TypeError, ValueError) as e:
                logger.debug(f"Skipped malformed SMS row: {e}")
        return messages

    def parse_messages(self, messages: List[RawSms]) -> List[DetectedTransaction]:
        transactions: List[DetectedTransaction] = []
        for sms in messages:
            transaction = build_sms_transaction(sms, self.parser)
            if transaction is not None:
                transactions.append(transaction)

        transactions.sort(key=lambda t: t.timestamp, reverse=True)
        return transactions

    async def collect_transactions(self, max_count: int, hours_back: float) -> List[DetectedTransaction]:
        """Scan the lookback window. Propagates SmsReadError."""
        min_date = self.clock() - timedelta(hours=hours_back)
        messages = await self.read_messages(max_count=max_count, min_date=min_date)
        return self.parse_messages(messages)

    async def get_recent_transactions(
        self,
        max_count: int = DEFAULT_SCAN_MAX_COUNT,
        hours_back: float = DEFAULT_SCAN_HOURS_BACK,
    ) -> List[DetectedTransaction]:
        """Return detected transactions from recent bank SMS, newest first. Never raises."""
        if not self.inbox.available:
            logger.info("SMS reader is only available on Android")
            return []

        try:
            return await self.collect_transactions(max_count, hours_back)
        except SmsReadError as e:
            logger.error(f"Failed to read SMS: {e}")
            return []
        except Exception as e:
            logger.error(f"Error scanning SMS: {e}", exc_info=True)
            return []

    def create_watcher(self, **kwargs) -> "SmsWatcher":
        return SmsWatcher(self, **kwargs)


class SmsWatcher:
    """
    Polls the inbox on an interval and forwards bank transactions newer than
    the last check.

    The next sleep only starts after the previous tick returns, so ticks never
    overlap. stop() bumps the generation so a read finishing afterwards is
    discarded instead of reaching the callback.
    """

    def __init__(
        self,
        reader: SmsReader,
        interval_seconds: float = DEFAULT_WATCH_INTERVAL_SECONDS,
        hours_back: float = DEFAULT_WATCH_HOURS_BACK,
        max_count: int = DEFAULT_WATCH_MAX_COUNT,
    ):
        self.reader = reader
        self.interval_seconds = interval_seconds
        self.hours_back = hours_back
        self.max_count = max_count
        self.last_checked: datetime = reader.clock()
        self._callback: Optional[TransactionCallback] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: TransactionCallback) -> bool:
        """Start polling. Must be called from inside a running event loop."""
        if not self.reader.available:
            logger.info("SMS watcher is only available on Android")
            return False

        self._cancel_task()
        self._generation += 1
        self._callback = callback
        self.last_checked = self.reader.clock()

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._generation))
        logger.info(f"SMS watcher started (interval {self.interval_seconds}s)")
        return True

    def stop(self) -> None:
        self._generation += 1
        self._callback = None
        self._cancel_task()

    async def tick(self) -> int:
        """Run one poll. Returns the number of forwarded transactions."""
        generation = self._generation
        transactions = await self.reader.collect_transactions(self.max_count, self.hours_back)

        if generation != self._generation or self._callback is None:
            return 0

        fresh = [t for t in transactions if t.timestamp > self.last_checked]
        self.last_checked = self.reader.clock()

        callback = self._callback
        delivered = 0
        for transaction in fresh:
            try:
                callback(transaction)
                delivered += 1
            except Exception as e:
                logger.error(f"SMS watcher callback failed for {transaction.id}: {e}", exc_info=True)
        return delivered

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self.interval_seconds)
            if generation != self._generation:
                break
            try:
                await self.tick()
            except SmsReadError as e:
                logger.error(f"SMS watcher tick failed: {e}")
            except Exception as e:
                logger.error(f"Error watching SMS: {e}", exc_info=True)

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
