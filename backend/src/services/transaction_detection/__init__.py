"""
Transaction Detection Service Package

Detects payments from UPI app notifications and bank SMS:
- Rule-based parsers for bank SMS and UPI notifications
- Source adapters (notification listener, SMS reader/watcher) over platform bridges
- A store that deduplicates detections and tracks user resolution
"""

from .bank_sms_parser import BankSmsParser
from .notification_listener import ListenerState, NotificationListener, build_notification_transaction
from .platform import create_platform_bridges, is_android_platform, SmsReadError
from .sms_reader import SmsReader, SmsWatcher, build_sms_transaction
from .state_storage import DetectionStateStorage, InMemoryStateStorage, JsonStateStorage
from .store import TransactionDetectionStore, create_detection_store
from .transaction_draft import build_transaction_draft
from .upi_parser import UpiNotificationParser, get_app_name, get_monitored_apps

__all__ = [
    # Extraction
    "BankSmsParser",
    "UpiNotificationParser",
    "get_app_name",
    "get_monitored_apps",

    # Platform
    "create_platform_bridges",
    "is_android_platform",
    "SmsReadError",

    # Source adapters
    "ListenerState",
    "NotificationListener",
    "build_notification_transaction",
    "SmsReader",
    "SmsWatcher",
    "build_sms_transaction",

    # Store
    "DetectionStateStorage",
    "InMemoryStateStorage",
    "JsonStateStorage",
    "TransactionDetectionStore",
    "create_detection_store",
    "build_transaction_draft",
]
