"""
Transaction Detection Store

Aggregates detected transactions from the notification listener and the SMS
watcher, deduplicates them, and tracks what the user processed or dismissed.

Dedup gate for an inbound transaction, in order:
1. id already processed or dismissed
2. same non-empty reference id as a pending transaction
3. same amount as a pending transaction within two minutes
4. otherwise prepend to pending (capped at 50)
"""

from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, List, Optional

from src.schemas.detection import (
    DetectedTransaction,
    DetectionSettings,
    DetectionSnapshot,
    DetectionState,
)
from src.services.transaction_detection.notification_listener import NotificationListener
from src.services.transaction_detection.platform import create_platform_bridges
from src.services.transaction_detection.sms_reader import SmsReader, SmsWatcher
from src.services.transaction_detection.state_storage import (
    DetectionStateStorage,
    InMemoryStateStorage,
    JsonStateStorage,
)
from src.utils.logger import get_logger
from src.utils.settings import Settings, get_settings

logger = get_logger(__name__)

MAX_PENDING = 50
MAX_RESOLVED_IDS = 200
DUPLICATE_WINDOW = timedelta(minutes=2)

SnapshotListener = Callable[[DetectionSnapshot], Any]


class TransactionDetectionStore:
    def __init__(
        self,
        sms_reader: SmsReader,
        notification_listener: NotificationListener,
        storage: Optional[DetectionStateStorage] = None,
        sms_watcher: Optional[SmsWatcher] = None,
        scan_max_count: int = 50,
        scan_hours_back: float = 48.0,
    ):
        self.sms_reader = sms_reader
        self.notification_listener = notification_listener
        self.sms_watcher = sms_watcher or sms_reader.create_watcher()
        self.storage = storage or InMemoryStateStorage()
        self.scan_max_count = scan_max_count
        self.scan_hours_back = scan_hours_back

        self._lock = threading.RLock()
        self._pending: List[DetectedTransaction] = []
        self._processed_ids: List[str] = []
        self._dismissed_ids: List[str] = []
        self._settings = DetectionSettings()
        self._is_listening = False
        self._is_sms_watching = False
        self._listeners: List[SnapshotListener] = []

        self._restore()

    # State accessors

    @property
    def pending_transactions(self) -> List[DetectedTransaction]:
        with self._lock:
            return list(self._pending)

    @property
    def processed_ids(self) -> List[str]:
        with self._lock:
            return list(self._processed_ids)

    @property
    def dismissed_ids(self) -> List[str]:
        with self._lock:
            return list(self._dismissed_ids)

    @property
    def settings(self) -> DetectionSettings:
        with self._lock:
            return self._settings.model_copy()

    @property
    def is_listening(self) -> bool:
        return self._is_listening

    @property
    def is_sms_watching(self) -> bool:
        return self._is_sms_watching

    def snapshot(self) -> DetectionSnapshot:
        with self._lock:
            return DetectionSnapshot(
                pending_transactions=list(self._pending),
                settings=self._settings.model_copy(),
                is_listening=self._is_listening,
                is_sms_watching=self._is_sms_watching,
            )

    def get_pending(self, transaction_id: str) -> Optional[DetectedTransaction]:
        with self._lock:
            return next((t for t in self._pending if t.id == transaction_id), None)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Pending queue

    def add_detected_transaction(self, transaction: DetectedTransaction) -> bool:
        """Run the dedup gate; returns True when the transaction was queued."""
        with self._lock:
            if transaction.id in self._processed_ids or transaction.id in self._dismissed_ids:
                return False

            if transaction.reference_id and any(
                t.reference_id == transaction.reference_id for t in self._pending
            ):
                logger.debug(f"Skipping {transaction.id}: duplicate reference {transaction.reference_id}")
                return False

            if any(
                t.amount == transaction.amount
                and abs(t.timestamp - transaction.timestamp) < DUPLICATE_WINDOW
                for t in self._pending
            ):
                logger.debug(f"Skipping {transaction.id}: same amount within {DUPLICATE_WINDOW}")
                return False

            self._pending = [transaction, *self._pending][:MAX_PENDING]

        logger.info(
            f"Detected {transaction.kind.value} of {transaction.amount} from {transaction.source.value}"
        )
        self._notify()
        return True

    def mark_as_processed(self, transaction_id: str) -> bool:
        return self._resolve(transaction_id, self._processed_ids)

    def dismiss_transaction(self, transaction_id: str) -> bool:
        return self._resolve(transaction_id, self._dismissed_ids)

    def clear_pending(self) -> None:
        with self._lock:
            self._pending = []
        self._notify()

    def _resolve(self, transaction_id: str, id_log: List[str]) -> bool:
        with self._lock:
            if transaction_id in self._processed_ids or transaction_id in self._dismissed_ids:
                return False

            self._pending = [t for t in self._pending if t.id != transaction_id]
            id_log.append(transaction_id)
            del id_log[:-MAX_RESOLVED_IDS]

        self._persist()
        self._notify()
        return True

    # Permissions

    async def check_permissions(self) -> DetectionSettings:
        notification_granted = await self.notification_listener.check_permission()
        sms_granted = await self.sms_reader.check_permission()
        self._update_settings(
            notification_permission_granted=notification_granted,
            sms_permission_granted=sms_granted,
        )
        return self.settings

    async def request_notification_access(self) -> bool:
        await self.notification_listener.request_permission()
        # The OS does not report the outcome; re-check after returning from settings
        granted = await self.notification_listener.check_permission()
        self._update_settings(notification_permission_granted=granted)
        return granted

    async def request_sms_access(self) -> bool:
        await self.sms_reader.request_permission()
        granted = await self.sms_reader.check_permission()
        self._update_settings(sms_permission_granted=granted)
        return granted

    # Listener lifecycle

    async def start_listening(self) -> None:
        settings = self.settings

        if (
            not self._is_listening
            and settings.notification_listener_enabled
            and settings.notification_permission_granted
        ):
            if await self.notification_listener.start(self.add_detected_transaction):
                self._is_listening = True

        if (
            not self._is_sms_watching
            and settings.sms_reader_enabled
            and settings.sms_permission_granted
        ):
            if self.sms_watcher.start(self.add_detected_transaction):
                self._is_sms_watching = True

        self._notify()

    def stop_listening(self) -> None:
        self.notification_listener.stop()
        self.sms_watcher.stop()
        self._is_listening = False
        self._is_sms_watching = False
        self._notify()

    async def scan_recent_sms(self) -> List[DetectedTransaction]:
        if not self.settings.sms_permission_granted:
            return []

        transactions = await self.sms_reader.get_recent_transactions(
            max_count=self.scan_max_count,
            hours_back=self.scan_hours_back,
        )
        # Oldest first, so the newest message ends up at the head of pending
        for transaction in reversed(transactions):
            self.add_detected_transaction(transaction)
        return transactions

    # Settings

    async def toggle_notification_listener(self, enabled: bool) -> None:
        self._update_settings(notification_listener_enabled=enabled)
        if enabled:
            await self.start_listening()
        else:
            self.notification_listener.stop()
            self._is_listening = False
            self._notify()

    async def toggle_sms_reader(self, enabled: bool) -> None:
        self._update_settings(sms_reader_enabled=enabled)
        if enabled:
            await self.start_listening()
        else:
            self.sms_watcher.stop()
            self._is_sms_watching = False
            self._notify()

    def toggle_auto_show_prompt(self, enabled: bool) -> None:
        self._update_settings(auto_show_prompt=enabled)

    # Internals

    def _update_settings(self, **changes: bool) -> None:
        with self._lock:
            self._settings = self._settings.model_copy(update=changes)
        self._persist()
        self._notify()

    def _restore(self) -> None:
        state = self.storage.load()
        if state is None:
            return
        with self._lock:
            self._processed_ids = state.processed_ids[-MAX_RESOLVED_IDS:]
            self._dismissed_ids = state.dismissed_ids[-MAX_RESOLVED_IDS:]
            self._settings = state.settings
        logger.info(
            f"Restored detection state: {len(self._processed_ids)} processed, "
            f"{len(self._dismissed_ids)} dismissed"
        )

    def _persist(self) -> None:
        with self._lock:
            state = DetectionState(
                processed_ids=list(self._processed_ids),
                dismissed_ids=list(self._dismissed_ids),
                settings=self._settings.model_copy(),
            )
        self.storage.save(state)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Detection snapshot listener failed: {e}", exc_info=True)


def create_detection_store(
    native_sms: Any = None,
    native_notifications: Any = None,
    settings: Optional[Settings] = None,
    storage: Optional[DetectionStateStorage] = None,
) -> TransactionDetectionStore:
    """Wire bridges, adapters and durable storage from application settings."""
    settings = settings or get_settings()
    bridges = create_platform_bridges(native_sms, native_notifications, settings)

    sms_reader = SmsReader(bridges.sms)
    watcher = sms_reader.create_watcher(
        interval_seconds=settings.SMS_WATCH_INTERVAL_SECONDS,
        hours_back=settings.SMS_WATCH_HOURS_BACK,
        max_count=settings.SMS_WATCH_MAX_COUNT,
    )

    return TransactionDetectionStore(
        sms_reader=sms_reader,
        notification_listener=NotificationListener(bridges.notifications),
        storage=storage or JsonStateStorage(Path(settings.STATE_FILE)),
        sms_watcher=watcher,
        scan_max_count=settings.SMS_SCAN_MAX_COUNT,
        scan_hours_back=settings.SMS_SCAN_HOURS_BACK,
    )
