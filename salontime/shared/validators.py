"""Shared validation utilities"""

import re
from html import escape
from typing import Optional

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def is_valid_time(value: Optional[str]) -> bool:
    """HH:MM, 24-hour clock"""
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def validate_business_hours(hours: dict) -> dict:
    """
    Validate a weekly schedule and normalize it.

    Each key must be a weekday; each value either {"closed": true} or
    {"opening": "HH:MM", "closing": "HH:MM"}.

    Raises:
        ValueError: describing the first invalid entry
    """
    if not isinstance(hours, dict):
        raise ValueError("Business hours must be an object keyed by weekday")

    normalized = {}
    for day, value in hours.items():
        day_key = str(day).lower()
        if day_key not in WEEKDAYS:
            raise ValueError(f"Invalid day: {day}")
        if not isinstance(value, dict):
            raise ValueError(f"Invalid hours for {day_key}")

        if value.get("closed"):
            normalized[day_key] = {"closed": True}
            continue

        opening = value.get("opening")
        closing = value.get("closing")
        if not opening or not closing:
            raise ValueError(f"Opening and closing times are required for {day_key}")
        if not is_valid_time(opening) or not is_valid_time(closing):
            raise ValueError(f"Invalid time format for {day_key}. Use HH:MM")

        normalized[day_key] = {"opening": opening, "closing": closing, "closed": False}

    return normalized


def sanitize_string(value: Optional[str], max_length: int = 5000) -> Optional[str]:
    """Trim, cap length and HTML-escape free text before storage"""
    if value is None:
        return None
    value = value.strip()[:max_length]
    return escape(value, quote=False)
