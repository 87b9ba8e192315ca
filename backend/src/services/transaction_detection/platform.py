"""
Platform Capability Bridges

The SMS inbox and notification access are only reachable on Android, through
native modules supplied by the host app (e.g. a Chaquopy or python-for-android
shell). Each capability is an abstract bridge with two implementations:

- Native*: wraps the host-provided module and runs its blocking calls off the loop
- Disabled*: reports the capability as unavailable and returns empty results

`create_platform_bridges` picks one of them at startup.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from src.utils.logger import get_logger
from src.utils.settings import Settings, get_settings

logger = get_logger(__name__)

PERMISSION_AUTHORIZED = "authorized"
PERMISSION_DENIED = "denied"

NotificationHandler = Callable[[Dict[str, Any]], None]


class SmsReadError(Exception):
    """Raised when the native inbox read fails."""


class SmsInboxBridge(ABC):
    available: bool = False

    @abstractmethod
    async def check_permission(self) -> bool: ...

    @abstractmethod
    async def request_permission(self) -> bool: ...

    @abstractmethod
    async def list_messages(self, max_count: int, min_date_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        """Return raw inbox rows, newest first. Raises SmsReadError on native failure."""


class NotificationAccessBridge(ABC):
    available: bool = False

    @abstractmethod
    async def get_permission_status(self) -> str: ...

    @abstractmethod
    async def request_permission(self) -> None:
        """Open the OS notification-access screen. The outcome is not reported back."""

    @abstractmethod
    def add_listener(self, handler: NotificationHandler) -> None: ...

    @abstractmethod
    def remove_listener(self) -> None: ...


class DisabledSmsInbox(SmsInboxBridge):
    available = False

    async def check_permission(self) -> bool:
        return False

    async def request_permission(self) -> bool:
        return False

    async def list_messages(self, max_count: int, min_date_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        return []


class DisabledNotificationAccess(NotificationAccessBridge):
    available = False

    async def get_permission_status(self) -> str:
        return PERMISSION_DENIED

    async def request_permission(self) -> None:
        return None

    def add_listener(self, handler: NotificationHandler) -> None:
        return None

    def remove_listener(self) -> None:
        return None


class NativeSmsInbox(SmsInboxBridge):
    """Bridge over the host's SMS module (`check_permission`, `request_permission`, `list`)."""

    available = True

    def __init__(self, native_module: Any):
        self.native = native_module

    async def check_permission(self) -> bool:
        return bool(await asyncio.to_thread(self.native.check_permission))

    async def request_permission(self) -> bool:
        return bool(await asyncio.to_thread(self.native.request_permission))

    async def list_messages(self, max_count: int, min_date_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        sms_filter: Dict[str, Any] = {"box": "inbox", "maxCount": max_count}
        if min_date_ms is not None:
            sms_filter["minDate"] = min_date_ms

        try:
            raw = await asyncio.to_thread(self.native.list, json.dumps(sms_filter))
        except Exception as e:
            raise SmsReadError(f"Native SMS read failed: {e}") from e

        try:
            rows = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except json.JSONDecodeError as e:
            raise SmsReadError(f"Unparseable SMS list: {e}") from e

        if not isinstance(rows, list):
            raise SmsReadError(f"Unexpected SMS list payload: {type(rows).__name__}")
        return [row for row in rows if isinstance(row, dict)]


class NativeNotificationAccess(NotificationAccessBridge):
    """Bridge over the host's notification-listener module."""

    available = True

    def __init__(self, native_module: Any):
        self.native = native_module

    async def get_permission_status(self) -> str:
        return str(await asyncio.to_thread(self.native.get_permission_status))

    async def request_permission(self) -> None:
        await asyncio.to_thread(self.native.request_permission)

    def add_listener(self, handler: NotificationHandler) -> None:
        self.native.on_notification_received(handler)

    def remove_listener(self) -> None:
        remove = getattr(self.native, "remove_listener", None)
        if remove is not None:
            remove()


@dataclass
class PlatformBridges:
    sms: SmsInboxBridge
    notifications: NotificationAccessBridge


def is_android_platform(settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    if settings.DETECTION_PLATFORM:
        return settings.DETECTION_PLATFORM.strip().lower() == "android"
    if hasattr(sys, "getandroidapilevel"):
        return True
    return "ANDROID_ARGUMENT" in os.environ or "ANDROID_ROOT" in os.environ


def create_platform_bridges(
    native_sms: Any = None,
    native_notifications: Any = None,
    settings: Optional[Settings] = None,
) -> PlatformBridges:
    """Select native bridges on Android when the host supplied the modules, disabled ones otherwise."""
    if not is_android_platform(settings):
        logger.info("Transaction detection is only available on Android; using disabled bridges")
        return PlatformBridges(sms=DisabledSmsInbox(), notifications=DisabledNotificationAccess())

    if native_sms is None:
        logger.warning("SMS native module not provided; SMS reader disabled")
        sms_bridge: SmsInboxBridge = DisabledSmsInbox()
    else:
        sms_bridge = NativeSmsInbox(native_sms)

    if native_notifications is None:
        logger.warning("Notification listener native module not provided; listener disabled")
        notification_bridge: NotificationAccessBridge = DisabledNotificationAccess()
    else:
        notification_bridge = NativeNotificationAccess(native_notifications)

    return PlatformBridges(sms=sms_bridge, notifications=notification_bridge)
