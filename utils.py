"""
utils.py

General-purpose utilities used across the tracker.

Provided helpers:
- format_emissions(emissions): format kg CO₂ for display, switching to tonnes at 1000 kg.
- format_date(value): short human date ("Mar 5, 2024") from an ISO string or date.
- normalize_activity_name(name): normalize labels to canonical factor keys.
- safe_float(value, default): coerce any input to float with a default fallback.
"""

from __future__ import annotations

import datetime
from typing import Any


def format_emissions(emissions: float) -> str:
    """Format a number of kilograms CO₂ with 2 decimals and unit.

    Example: 12.345 -> "12.35 kg CO₂", 1500 -> "1.50 t CO₂"
    """
    if emissions >= 1000:
        return f"{emissions / 1000:.2f} t CO₂"
    return f"{emissions:.2f} kg CO₂"


def format_date(value: Any) -> str:
    """Return a short display date such as "Mar 5, 2024".

    Accepts ISO strings, dates and datetimes; anything unparseable is returned unchanged.
    """
    if isinstance(value, datetime.datetime):
        value = value.date()
    if isinstance(value, str):
        try:
            value = datetime.date.fromisoformat(value[:10])
        except ValueError:
            return value
    if not isinstance(value, datetime.date):
        return str(value)
    return f"{value:%b} {value.day}, {value.year}"


def normalize_activity_name(name: str) -> str:
    """Normalize arbitrary activity labels to canonical factor keys.

    Operations:
    - Trim whitespace
    - Lowercase
    - Replace spaces, dashes, and slashes with underscores
    - Remove parentheses
    - Collapse multiple underscores

    Examples:
    - "Car (Petrol)"   -> "car_petrol"
    - "Flight short"   -> "flight_short"
    """
    s = name.strip().lower()
    # Remove parentheses
    s = s.replace("(", "").replace(")", "")
    # Unify common separators to underscores
    for ch in [" ", "-", "/", "\\"]:
        s = s.replace(ch, "_")
    # Collapse multiple underscores
    while "__" in s:
        s = s.replace("__", "_")
    return s.strip("_")


def safe_float(value: Any, default: float = 0.0) -> float:
    """Best-effort conversion to float with a default fallback.

    Examples:
    - safe_float("3.14") -> 3.14
    - safe_float(None)   -> 0.0 (default)
    - safe_float("abc", default=1.0) -> 1.0
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(default)
