"""Conversions between aggregate field values and JSON-safe document values."""

from datetime import date, datetime


def dump_datetime(value):
    return value.isoformat() if value else None


def load_datetime(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def load_date(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)
