"""
Notification Listener

Listens for UPI app notifications and turns payment notifications into
DetectedTransaction events. Requires the user to grant Notification Access
in the device settings.
"""

from __future__ import annotations

import enum
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from src.schemas.detection import (
    DetectedTransaction,
    RawNotification,
    TransactionDirection,
    TransactionKind,
    TransactionSource,
)
from src.services.transaction_detection.platform import (
    PERMISSION_AUTHORIZED,
    NotificationAccessBridge,
)
from src.services.transaction_detection.text_extraction import join_parts
from src.services.transaction_detection.upi_parser import UpiNotificationParser
from src.utils.logger import get_logger

logger = get_logger(__name__)

TransactionCallback = Callable[[DetectedTransaction], Any]


class ListenerState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    PERMISSION_UNKNOWN = "permission_unknown"
    PERMISSION_DENIED = "permission_denied"
    PERMISSION_GRANTED = "permission_granted"
    LISTENING = "listening"
    STOPPED = "stopped"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _timestamp_from_ms(timestamp_ms: int) -> datetime:
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return datetime.now(timezone.utc)


def normalize_notification(payload: Dict[str, Any]) -> RawNotification:
    """Map a native notification payload onto RawNotification."""
    return RawNotification(
        app_package=payload.get("package") or payload.get("app") or "",
        title=payload.get("title") or "",
        text=payload.get("text") or "",
        sub_text=payload.get("subText"),
        big_text=payload.get("bigText"),
        timestamp_ms=int(payload.get("time") or _now_ms()),
    )


def build_notification_transaction(
    notification: RawNotification,
    parser: Optional[UpiNotificationParser] = None,
) -> Optional[DetectedTransaction]:
    """Filter by origin app, classify, extract; returns None for non-transactions."""
    parser = parser or UpiNotificationParser()

    if not parser.is_upi_notification(notification.app_package):
        return None
    if not parser.is_transaction_notification(notification):
        return None

    parsed = parser.parse(notification)
    if parsed is None:
        return None

    return DetectedTransaction(
        id=f"notif_{_now_ms()}_{uuid.uuid4().hex[:9]}",
        source=TransactionSource.NOTIFICATION,
        source_app=parsed.source_app_name,
        kind=TransactionKind.INCOME if parsed.direction == TransactionDirection.CREDIT else TransactionKind.EXPENSE,
        amount=parsed.amount,
        merchant=parsed.merchant,
        upi_id=parsed.upi_id,
        reference_id=parsed.reference_id,
        timestamp=_timestamp_from_ms(notification.timestamp_ms),
        raw_text=join_parts([notification.title, notification.text, notification.big_text], " | "),
    )


class NotificationListener:
    """Owns the notification-access lifecycle and the single active callback."""

    def __init__(self, access: NotificationAccessBridge, parser: Optional[UpiNotificationParser] = None):
        self.access = access
        self.parser = parser or UpiNotificationParser()
        self.state = ListenerState.UNINITIALIZED
        self._callback: Optional[TransactionCallback] = None
        self._subscribed = False
        self._lock = threading.RLock()

    @property
    def is_listening(self) -> bool:
        return self.state == ListenerState.LISTENING

    async def initialize(self) -> bool:
        if not self.access.available:
            logger.info("Notification listener is only available on Android")
            return False
        if self.state == ListenerState.UNINITIALIZED:
            self.state = ListenerState.PERMISSION_UNKNOWN
        return True

    async def check_permission(self) -> bool:
        if not self.access.available:
            return False
        try:
            status = await self.access.get_permission_status()
        except Exception as e:
            logger.error(f"Error checking notification permission: {e}", exc_info=True)
            return False

        granted = status == PERMISSION_AUTHORIZED
        if self.state != ListenerState.LISTENING:
            self.state = ListenerState.PERMISSION_GRANTED if granted else ListenerState.PERMISSION_DENIED
        return granted

    async def request_permission(self) -> None:
        """Hand off to the OS settings screen; callers must re-check afterwards."""
        if not self.access.available:
            return
        try:
            await self.access.request_permission()
        except Exception as e:
            logger.error(f"Error requesting notification permission: {e}", exc_info=True)
            return
        if self.state != ListenerState.LISTENING:
            self.state = ListenerState.PERMISSION_UNKNOWN

    async def start(self, callback: TransactionCallback) -> bool:
        if not await self.initialize():
            return False

        if not await self.check_permission():
            logger.info("Notification access permission not granted")
            return False

        with self._lock:
            self._callback = callback

        if not self._subscribed:
            try:
                self.access.add_listener(self._on_native_notification)
            except Exception as e:
                logger.error(f"Error starting notification listener: {e}", exc_info=True)
                with self._lock:
                    self._callback = None
                return False
            self._subscribed = True
            logger.info("Notification listener started")

        self.state = ListenerState.LISTENING
        return True

    def stop(self) -> None:
        with self._lock:
            self._callback = None

        if self._subscribed:
            try:
                self.access.remove_listener()
            except Exception as e:
                logger.error(f"Error removing notification listener: {e}", exc_info=True)
            self._subscribed = False

        if self.state != ListenerState.UNINITIALIZED:
            self.state = ListenerState.STOPPED

    def handle_notification(self, notification: RawNotification) -> Optional[DetectedTransaction]:
        with self._lock:
            if self._callback is None:
                return None

        transaction = build_notification_transaction(notification, self.parser)
        if transaction is None:
            return None

        # stop() may have run while parsing; deliver only to a still-active callback
        with self._lock:
            callback = self._callback
            if callback is None:
                return None
            callback(transaction)
        return transaction

    def _on_native_notification(self, payload: Dict[str, Any]) -> None:
        try:
            notification = normalize_notification(payload)
        except (ValidationError, AttributeError, TypeError, ValueError) as e:
            logger.debug(f"Dropped malformed notification payload: {e}")
            return

        try:
            self.handle_notification(notification)
        except Exception as e:
            logger.error(f"Error handling notification from {notification.app_package}: {e}", exc_info=True)
