"""
Value normalization shared by the API, the services and LLM post-processing.
Handles timestamps, amount cleaning and enum coercion.
"""
from datetime import date, datetime, time, timezone
from typing import Any, Optional

import pandas as pd

from core.logger import setup_logger

logger = setup_logger(__name__)

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

TRANSACTION_TYPES = ("income", "expenditure")
PAYMENT_METHODS = ("cash", "card", "bank_transfer", "upi", "other")
MAX_CURRENCY_LENGTH = 10

TYPE_ALIASES = {
    "income": "income",
    "credit": "income",
    "cr": "income",
    "deposit": "income",
    "expenditure": "expenditure",
    "expense": "expenditure",
    "expenses": "expenditure",
    "debit": "expenditure",
    "dr": "expenditure",
    "withdrawal": "expenditure",
    "payment": "expenditure",
}

PAYMENT_METHOD_ALIASES = {
    "cash": "cash",
    "card": "card",
    "credit card": "card",
    "debit card": "card",
    "credit_card": "card",
    "debit_card": "card",
    "pos": "card",
    "bank_transfer": "bank_transfer",
    "bank transfer": "bank_transfer",
    "transfer": "bank_transfer",
    "neft": "bank_transfer",
    "imps": "bank_transfer",
    "rtgs": "bank_transfer",
    "wire": "bank_transfer",
    "upi": "upi",
    "other": "other",
}


def utc_now() -> datetime:
    """Current time as an aware UTC datetime truncated to seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_db_timestamp(value: datetime) -> str:
    """
    Format a datetime for storage.

    Aware values are converted to UTC; naive values are assumed to be UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: Any) -> Any:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if isinstance(value, str):
        return datetime.strptime(value, DB_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    return value


def start_bound(value: date) -> str:
    """Inclusive lower bound for a date or datetime filter."""
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    return to_db_timestamp(datetime.combine(value, time.min))


def end_bound(value: date) -> str:
    """
    Inclusive upper bound for a date or datetime filter.

    A bare date covers the whole day.
    """
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    return to_db_timestamp(datetime.combine(value, time(23, 59, 59)))


def clean_amount(value: Any) -> Optional[float]:
    """
    Clean and normalize an amount.
    Removes currency symbols, spaces and thousands separators, and converts to float.

    Args:
        value: Raw amount value (string or number)

    Returns:
        Non-negative float value or None if invalid
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if pd.isna(value):
            return None
        return abs(float(value))

    amount_str = str(value).strip()
    if not amount_str:
        return None

    # Remove spaces and common thousands separators
    amount_str = amount_str.replace(" ", "").replace(",", "").replace("\xa0", "")

    # Keep digits, decimal point and minus sign ("Rs.1,200.00", "$ 45" and so on)
    cleaned = ""
    for char in amount_str:
        if char.isdigit() or char in [".", "-"]:
            cleaned += char
    cleaned = cleaned.lstrip(".")

    if not cleaned:
        logger.warning(f"Failed to parse amount: '{value}' - no numeric content")
        return None

    try:
        result = float(cleaned)
    except (ValueError, TypeError) as e:
        logger.warning(f"Failed to parse amount: '{value}' -> {e}")
        return None

    if result < 0:
        logger.debug(f"Negative amount {result}, using absolute value")
        return abs(result)
    return result


def normalize_type(value: Any) -> Optional[str]:
    """Map a free-form transaction type onto income/expenditure."""
    if not isinstance(value, str):
        return None
    return TYPE_ALIASES.get(value.strip().lower())


def normalize_currency(value: Any) -> Optional[str]:
    """Upper-cased currency code, or None when blank."""
    if value is None or not str(value).strip():
        return None
    return str(value).strip().upper()


def normalize_payment_method(value: Any) -> str:
    """Map a free-form payment method onto the supported set, defaulting to other."""
    if not isinstance(value, str):
        return "other"
    key = value.strip().lower().replace("-", " ")
    if key in PAYMENT_METHOD_ALIASES:
        return PAYMENT_METHOD_ALIASES[key]
    if key.replace(" ", "_") in PAYMENT_METHOD_ALIASES:
        return PAYMENT_METHOD_ALIASES[key.replace(" ", "_")]
    return "other"


def parse_document_date(value: Any) -> Optional[datetime]:
    """
    Parse a date found on a receipt or statement.

    Receipts and statements are read day-first ("03/04/2024" is 3 April).

    Returns:
        Naive datetime or None when the value is not a recognisable date
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    # ISO strings are unambiguous; dayfirst would swap their month and day
    dayfirst = not (len(text) >= 10 and text[4] == "-" and text[7] == "-")

    parsed = pd.to_datetime(text, dayfirst=dayfirst, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime().replace(tzinfo=None)
