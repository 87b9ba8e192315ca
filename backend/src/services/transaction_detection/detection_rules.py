from __future__ import annotations

import enum
import re
from typing import Dict, List, Tuple


# Shared vocabularies

OTP_KEYWORDS: List[str] = [
    "otp",
    "one time password",
    "verification code",
]

MERCHANT_STOPWORDS = {"you", "your", "the", "a", "an"}
MERCHANT_MIN_LENGTH = 2
MERCHANT_MAX_LENGTH = 50


# Bank SMS rules
# Patterns are tried in order; the first one yielding a positive amount wins.

BANK_AMOUNT_REGEXES = [
    re.compile(r"(?:Rs\.?|INR|₹)\s*([\d,]+(?:\.\d{2})?)", re.IGNORECASE),
    re.compile(
        r"(?:debited|credited|withdrawn|deposited|sent|received)\s*(?:Rs\.?|INR|₹)?\s*([\d,]+(?:\.\d{2})?)",
        re.IGNORECASE,
    ),
    re.compile(
        r"([\d,]+(?:\.\d{2})?)\s*(?:Rs\.?|INR|₹)?\s*(?:debited|credited|withdrawn|deposited)",
        re.IGNORECASE,
    ),
]

BANK_ACCOUNT_REGEX = re.compile(r"(?:a/c|ac|acct|account)[:\s]*[xX*]*(\d{4})", re.IGNORECASE)
BANK_BALANCE_REGEX = re.compile(
    r"(?:bal(?:ance)?|avl bal|available)[:\s]*(?:Rs\.?|INR|₹)?\s*([\d,]+(?:\.\d{2})?)",
    re.IGNORECASE,
)
# Keyword must stand alone and the token must carry a digit ("Refund of" is not a reference)
BANK_REFERENCE_REGEX = re.compile(
    r"\b(?:ref(?:erence)?(?:\s*no)?|txn(?:\s*id)?|utr|rrn)\b[.:\s#]*([A-Z0-9]*\d[A-Z0-9]*)",
    re.IGNORECASE,
)

BANK_MERCHANT_REGEXES = [
    re.compile(r"(?:to|at|for|@)\s+([A-Za-z0-9\s]+?)(?:\s+on|\s+ref|\s+upi|\s+via|\.\s|$)", re.IGNORECASE),
    re.compile(r"(?:from)\s+([A-Za-z0-9\s]+?)(?:\s+on|\s+ref|\.\s|$)", re.IGNORECASE),
    re.compile(r"VPA\s+([a-zA-Z0-9._-]+@[a-zA-Z0-9]+)", re.IGNORECASE),
]

# Credit is checked before debit so refunds and cashback win over incidental debit words.
BANK_DIRECTION_KEYWORDS: Dict[str, List[str]] = {
    "credit": [
        "credited",
        "received",
        "deposited",
        "refund",
        "cashback",
        "credit",
        "salary",
        "interest",
    ],
    "debit": [
        "debited",
        "withdrawn",
        "sent",
        "paid",
        "purchase",
        "payment",
        "transfer",
        "txn",
        "debit",
        "spent",
        "used",
        "atm",
        "pos",
    ],
}

BANK_PROMOTIONAL_KEYWORDS: List[str] = [
    "offer",
    "discount",
    "win",
    "click here",
    "apply now",
]


class Bank(str, enum.Enum):
    SBI = "State Bank of India"
    HDFC = "HDFC Bank"
    ICICI = "ICICI Bank"
    AXIS = "Axis Bank"
    KOTAK = "Kotak Bank"
    YES = "Yes Bank"
    PNB = "Punjab National Bank"
    BOB = "Bank of Baroda"
    BOI = "Bank of India"
    CANARA = "Canara Bank"
    UNION = "Union Bank of India"
    IDFC = "IDFC First Bank"
    INDUSIND = "IndusInd Bank"
    FEDERAL = "Federal Bank"
    RBL = "RBL Bank"
    AU = "AU Small Finance Bank"
    PAYTM = "Paytm Payments Bank"


# Sender ids accepted as bank SMS (normalized: letters only, uppercase)
BANK_SENDER_IDS: Tuple[str, ...] = (
    "SBIINB", "SBIPSG", "SBISMS", "ATMSBI", "SBIYONO",
    "HDFCBK", "HDFCBN", "HDFCSMS",
    "ICICIB", "ICICI", "ICICISMS",
    "AXISBK", "AXISBNK",
    "KOTAKB", "KOTAK",
    "YESBK", "YESBNK",
    "PNBSMS", "PUNBNK",
    "BOIIND", "BOBSMS",
    "CANBNK",
    "UBOI",
    "IDFCFB",
    "INDUSB",
    "FEDBNK",
    "RBLBNK",
    "AUBANK",
    # Wallet and UPI senders
    "JIOPAY", "PAYTMB", "PHONPE", "GPAY",
)

# Ordered: the first prefix contained in the sender names the bank
BANK_NAME_PREFIXES: Dict[str, Bank] = {
    "SBI": Bank.SBI,
    "SBIINB": Bank.SBI,
    "SBIPSG": Bank.SBI,
    "HDFC": Bank.HDFC,
    "HDFCBK": Bank.HDFC,
    "ICICI": Bank.ICICI,
    "ICICIB": Bank.ICICI,
    "AXIS": Bank.AXIS,
    "AXISBK": Bank.AXIS,
    "KOTAK": Bank.KOTAK,
    "KOTAKB": Bank.KOTAK,
    "YESBNK": Bank.YES,
    "YESBK": Bank.YES,
    "PNBSMS": Bank.PNB,
    "PUNBNK": Bank.PNB,
    "BOBSMS": Bank.BOB,
    "BOIIND": Bank.BOI,
    "CANBNK": Bank.CANARA,
    "UBOI": Bank.UNION,
    "IDFCFB": Bank.IDFC,
    "INDUSB": Bank.INDUSIND,
    "FEDBNK": Bank.FEDERAL,
    "RBLBNK": Bank.RBL,
    "AUBANK": Bank.AU,
    "PAYTMB": Bank.PAYTM,
}


# UPI notification rules

UPI_AMOUNT_REGEXES = [
    re.compile(r"₹\s*([\d,]+(?:\.\d{2})?)", re.IGNORECASE),
    re.compile(r"Rs\.?\s*([\d,]+(?:\.\d{2})?)", re.IGNORECASE),
    re.compile(r"INR\s*([\d,]+(?:\.\d{2})?)", re.IGNORECASE),
    re.compile(
        r"(?:paid|received|sent|debited|credited)\s*(?:₹|Rs\.?|INR)?\s*([\d,]+(?:\.\d{2})?)",
        re.IGNORECASE,
    ),
]

UPI_ID_REGEX = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9]+)")
UPI_REFERENCE_REGEX = re.compile(
    r"\b(?:upi\s*ref(?:\s*no)?|ref(?:erence)?(?:\s*no)?|txn\s*id|transaction\s*id|utr)\b[.:\s#]*([A-Z0-9]*\d[A-Z0-9]*)",
    re.IGNORECASE,
)

UPI_MERCHANT_REGEXES = [
    re.compile(r"(?:paid to|sent to|to)\s+([A-Za-z0-9\s]+?)(?:\s*@|\s*₹|\s*Rs|\.|$)", re.IGNORECASE),
    re.compile(r"(?:received from|from)\s+([A-Za-z0-9\s]+?)(?:\s*@|\s*₹|\s*Rs|\.|$)", re.IGNORECASE),
    re.compile(r"(?:at|for)\s+([A-Za-z0-9\s]+?)(?:\s*₹|\s*Rs|\.|$)", re.IGNORECASE),
]

UPI_DIRECTION_KEYWORDS: Dict[str, List[str]] = {
    "credit": [
        "received",
        "credited",
        "got",
        "money received",
        "received from",
        "credit",
        "cashback",
        "refund",
    ],
    "debit": [
        "paid",
        "sent",
        "debited",
        "transferred",
        "payment successful",
        "money sent",
        "paid to",
        "sent to",
        "payment of",
        "debit",
    ],
}

UPI_PROMOTIONAL_KEYWORDS: List[str] = [
    "offer",
    "cashback offer",
    "rewards",
    "check out",
    "discover",
    "shop now",
    "update",
    "download",
    "new feature",
    "reminder",
    "rate us",
    "feedback",
]


class UpiApp(enum.Enum):
    """UPI apps whose notifications are monitored, keyed by Android package."""

    PHONEPE = ("com.phonepe.app", "PhonePe")
    GPAY = ("com.google.android.apps.nbu.paisa.user", "Google Pay")
    PAYTM = ("net.one97.paytm", "Paytm")
    BHARATPE = ("com.bharatpe.app", "BharatPe")
    AMAZONPAY = ("in.amazon.mShop.android.shopping", "Amazon Pay")
    CRED = ("com.dreamplug.androidapp", "CRED")
    MOBIKWIK = ("com.mobikwik_new", "MobiKwik")
    FREECHARGE = ("com.freecharge.android", "Freecharge")
    WHATSAPP = ("com.whatsapp", "WhatsApp Pay")

    def __init__(self, package_name: str, display_name: str):
        self.package_name = package_name
        self.display_name = display_name


UPI_APPS_BY_PACKAGE: Dict[str, UpiApp] = {app.package_name: app for app in UpiApp}


def all_direction_keywords(keyword_map: Dict[str, List[str]]) -> List[str]:
    return [keyword for keywords in keyword_map.values() for keyword in keywords]
