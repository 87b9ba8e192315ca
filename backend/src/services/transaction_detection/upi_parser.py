from __future__ import annotations

from typing import List, Optional

from src.schemas.detection import (
    MonitoredApp,
    ParsedUpiTransaction,
    RawNotification,
    TransactionDirection,
)
from src.services.transaction_detection.detection_rules import (
    OTP_KEYWORDS,
    UPI_AMOUNT_REGEXES,
    UPI_APPS_BY_PACKAGE,
    UPI_DIRECTION_KEYWORDS,
    UPI_ID_REGEX,
    UPI_MERCHANT_REGEXES,
    UPI_PROMOTIONAL_KEYWORDS,
    UPI_REFERENCE_REGEX,
    UpiApp,
    all_direction_keywords,
)
from src.services.transaction_detection.text_extraction import (
    contains_any,
    detect_direction,
    first_amount,
    first_group,
    first_merchant,
    has_amount,
    join_parts,
)

_TRANSACTION_KEYWORDS = all_direction_keywords(UPI_DIRECTION_KEYWORDS)


def get_app_name(package_name: str) -> str:
    app = UPI_APPS_BY_PACKAGE.get(package_name)
    return app.display_name if app else package_name


def get_monitored_apps() -> List[MonitoredApp]:
    return [
        MonitoredApp(key=app.name.lower(), name=app.display_name, package_name=app.package_name)
        for app in UpiApp
    ]


class UpiNotificationParser:
    """Rule-based parser for payment notifications posted by UPI apps."""

    def is_upi_notification(self, package_name: str) -> bool:
        return package_name in UPI_APPS_BY_PACKAGE

    def is_transaction_notification(self, notification: RawNotification) -> bool:
        if not self.is_upi_notification(notification.app_package):
            return False

        # Sub text is left out of classification; it is only used during extraction
        text = join_parts([notification.title, notification.text, notification.big_text])
        lowered = text.lower()

        if contains_any(lowered, OTP_KEYWORDS):
            return False

        has_keyword = contains_any(lowered, _TRANSACTION_KEYWORDS)
        if contains_any(lowered, UPI_PROMOTIONAL_KEYWORDS) and not has_keyword:
            return False

        return has_keyword and has_amount(UPI_AMOUNT_REGEXES, text)

    def detect_direction(self, text: str) -> TransactionDirection:
        # Most UPI pushes are outbound payments; an explicit credit word is needed to flip it
        return detect_direction(text.lower(), UPI_DIRECTION_KEYWORDS) or TransactionDirection.DEBIT

    def parse(self, notification: RawNotification) -> Optional[ParsedUpiTransaction]:
        """Classify then extract. Returns None for anything that is not a transaction."""
        if not self.is_transaction_notification(notification):
            return None

        full_text = join_parts([
            notification.title,
            notification.text,
            notification.big_text,
            notification.sub_text,
        ])

        amount = first_amount(UPI_AMOUNT_REGEXES, full_text)
        if amount is None:
            return None

        return ParsedUpiTransaction(
            direction=self.detect_direction(full_text),
            amount=amount,
            merchant=first_merchant(UPI_MERCHANT_REGEXES, full_text),
            upi_id=first_group(UPI_ID_REGEX, full_text),
            reference_id=first_group(UPI_REFERENCE_REGEX, full_text),
            source_app_name=get_app_name(notification.app_package),
        )
