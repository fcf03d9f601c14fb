"""Lenient value coercion applied at the import boundary - pure functions."""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

from dateutil import parser as date_parser

from .models import TaskPriority, TaskStatus

# Numbers strictly inside this window are read as spreadsheet serial days
SERIAL_DATE_MIN = 25000
SERIAL_DATE_MAX = 50000

SERIAL_EPOCH = datetime(1900, 1, 1, tzinfo=timezone.utc)
# Serial 60 is the 1900-02-29 that never existed
PHANTOM_LEAP_DAY = 60

# Fills components missing from partial date strings
_DATE_DEFAULTS = datetime(1970, 1, 1)

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LIST_SEPARATORS = re.compile(r"[,;|\n]")
_WORD_SEPARATORS = re.compile(r"[\s_\-]+")

TRUE_WORDS = frozenset({"true", "yes", "y", "1", "on", "checked", "active"})
FALSE_WORDS = frozenset({"false", "no", "n", "0", "off", "unchecked", "inactive"})

STATUS_SYNONYMS: dict[str, TaskStatus] = {
    "todo": TaskStatus.PENDING,
    "to do": TaskStatus.PENDING,
    "pending": TaskStatus.PENDING,
    "new": TaskStatus.PENDING,
    "open": TaskStatus.PENDING,
    "not started": TaskStatus.PENDING,
    "backlog": TaskStatus.PENDING,
    "doing": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
    "inprogress": TaskStatus.IN_PROGRESS,
    "working": TaskStatus.IN_PROGRESS,
    "active": TaskStatus.IN_PROGRESS,
    "started": TaskStatus.IN_PROGRESS,
    "wip": TaskStatus.IN_PROGRESS,
    "done": TaskStatus.COMPLETED,
    "complete": TaskStatus.COMPLETED,
    "completed": TaskStatus.COMPLETED,
    "finished": TaskStatus.COMPLETED,
    "closed": TaskStatus.COMPLETED,
    "resolved": TaskStatus.COMPLETED,
    "cancelled": TaskStatus.CANCELLED,
    "canceled": TaskStatus.CANCELLED,
    "rejected": TaskStatus.CANCELLED,
    "dropped": TaskStatus.CANCELLED,
    "blocked": TaskStatus.BLOCKED,
    "on hold": TaskStatus.BLOCKED,
    "waiting": TaskStatus.BLOCKED,
    "stuck": TaskStatus.BLOCKED,
    "review": TaskStatus.REVIEW,
    "in review": TaskStatus.REVIEW,
    "reviewing": TaskStatus.REVIEW,
    "needs review": TaskStatus.REVIEW,
}

PRIORITY_SYNONYMS: dict[str, TaskPriority] = {
    "low": TaskPriority.LOW,
    "l": TaskPriority.LOW,
    "minor": TaskPriority.LOW,
    "1": TaskPriority.LOW,
    "medium": TaskPriority.MEDIUM,
    "med": TaskPriority.MEDIUM,
    "m": TaskPriority.MEDIUM,
    "normal": TaskPriority.MEDIUM,
    "2": TaskPriority.MEDIUM,
    "high": TaskPriority.HIGH,
    "hi": TaskPriority.HIGH,
    "h": TaskPriority.HIGH,
    "major": TaskPriority.HIGH,
    "important": TaskPriority.HIGH,
    "3": TaskPriority.HIGH,
    "urgent": TaskPriority.URGENT,
    "critical": TaskPriority.URGENT,
    "crit": TaskPriority.URGENT,
    "emergency": TaskPriority.URGENT,
    "asap": TaskPriority.URGENT,
    "4": TaskPriority.URGENT,
    "5": TaskPriority.URGENT,
}


def is_blank(value: Any) -> bool:
    """None or a whitespace-only string."""
    return value is None or (isinstance(value, str) and not value.strip())


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_probable_serial(value: Any) -> bool:
    """True when a number (or numeric text) falls in the serial-date window."""
    if isinstance(value, str) and _NUMERIC.match(value.strip()):
        value = float(value)
    return _is_number(value) and SERIAL_DATE_MIN < value < SERIAL_DATE_MAX


def serial_to_datetime(serial: float) -> datetime:
    """
    Convert a spreadsheet serial day number to a UTC datetime.

    Serial 1 is 1900-01-01. The format counts a 1900-02-29 that does not
    exist, so serial 60 resolves to 1900-03-01 and every later serial is
    shifted back one day. The fractional part is the time of day.

    Pure function - no I/O.
    """
    if serial < 1:
        raise ValueError(f"Serial day must be at least 1, got {serial}")
    whole = int(serial)
    offset = whole - 1 if whole <= PHANTOM_LEAP_DAY else whole - 2
    return SERIAL_EPOCH + timedelta(days=offset + (serial - whole))


def parse_date(value: Any) -> datetime | None:
    """
    Coerce a date-ish value to a timezone-aware UTC datetime.

    Accepts datetime/date objects, spreadsheet serial numbers (as numbers or
    numeric text), epoch milliseconds, and any string dateutil can read.
    Naive values are taken as UTC. Blank input returns None; anything else
    that cannot be read raises ValueError.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise ValueError(f"Not a date: {value!r}")
    if _is_number(value):
        if is_probable_serial(value):
            return serial_to_datetime(value)
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e

    text = str(value).strip()
    if _NUMERIC.match(text):
        if is_probable_serial(text):
            return serial_to_datetime(float(text))
        raise ValueError(f"Unrecognized date: {text!r}")
    try:
        parsed = date_parser.parse(text, default=_DATE_DEFAULTS)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Unrecognized date: {text!r}") from e
    return _as_utc(parsed)


def is_valid_date(value: Any) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def parse_number(value: Any) -> float | None:
    """
    Coerce to a number, ignoring currency symbols and thousands separators.

    Blank input returns None; text with no usable digits raises ValueError.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if _is_number(value):
        return value
    cleaned = _NON_NUMERIC.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError as e:
        raise ValueError(f"Not a number: {value!r}") from e


def is_valid_number(value: Any) -> bool:
    try:
        parse_number(value)
    except ValueError:
        return False
    return True


def parse_bool(value: Any) -> bool:
    """
    Coerce to a boolean.

    Recognizes the TRUE_WORDS/FALSE_WORDS vocabularies case-insensitively.
    None is False. Any other word raises ValueError so callers can fall back
    to the field default (False) and report it.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS or not text:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def parse_list(value: Any) -> list[str]:
    """Split on , ; | or newline, trimming and dropping empty items."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items = [str(item) for item in value if item is not None]
    else:
        items = _LIST_SEPARATORS.split(str(value))
    return [item.strip() for item in items if item.strip()]


def _vocabulary_key(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _WORD_SEPARATORS.sub(" ", str(value).strip().lower())


def is_known_status(value: Any) -> bool:
    return isinstance(value, TaskStatus) or _vocabulary_key(value) in STATUS_SYNONYMS


def is_known_priority(value: Any) -> bool:
    return isinstance(value, TaskPriority) or _vocabulary_key(value) in PRIORITY_SYNONYMS


def normalize_status(value: Any) -> TaskStatus:
    """Map free-text status to TaskStatus; unknown or blank is PENDING."""
    if isinstance(value, TaskStatus):
        return value
    if is_blank(value):
        return TaskStatus.PENDING
    return STATUS_SYNONYMS.get(_vocabulary_key(value), TaskStatus.PENDING)


def normalize_priority(value: Any) -> TaskPriority:
    """Map free-text priority to TaskPriority; unknown or blank is MEDIUM."""
    if isinstance(value, TaskPriority):
        return value
    if is_blank(value):
        return TaskPriority.MEDIUM
    return PRIORITY_SYNONYMS.get(_vocabulary_key(value), TaskPriority.MEDIUM)
