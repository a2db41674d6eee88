"""
activities.py

Activity and user records, and the checks applied before an activity is saved.

Writes are strict: unknown categories or types, missing fields and
non-positive values are rejected here. Reads are lenient: Activity.from_record
accepts whatever is in storage so that aggregation never fails on old data.
"""

from __future__ import annotations

import datetime as dt
import math
import uuid
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional

from co2_engine import ACTIVITY_OPTIONS, CATEGORIES, EMISSION_FACTORS, calculate_emission
from errors import InvalidArgumentError, MissingFieldError
from utils import normalize_activity_name, safe_float

REQUIRED_FIELDS = ("category", "type", "value", "unit", "date")


@dataclass(frozen=True)
class Activity:
    id: str
    user_id: str
    category: str
    type: str
    value: float
    unit: str
    emission: float
    date: str
    notes: str = ""
    created_at: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Activity":
        """Build an activity from a stored row without validating it."""
        emission = safe_float(record.get("emission"))
        return cls(
            id=str(record.get("id", "")),
            user_id=str(record.get("user_id", "")),
            category=str(record.get("category", "") or ""),
            type=str(record.get("type", "") or ""),
            value=safe_float(record.get("value")),
            unit=str(record.get("unit", "") or ""),
            emission=emission if math.isfinite(emission) else 0.0,
            date=str(record.get("date", "") or ""),
            notes=str(record.get("notes", "") or ""),
            created_at=str(record.get("created_at", "") or ""),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class User:
    id: str
    email: str
    display_name: str
    monthly_goal: int
    created_at: str = ""

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_date(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    try:
        return dt.date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        raise InvalidArgumentError(f"date must be YYYY-MM-DD, got {value!r}") from None


def _parse_value(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidArgumentError(f"value must be a number, got {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"value must be a number, got {value!r}") from None
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidArgumentError(f"value must be a positive number, got {value!r}")
    return amount


def validate_activity_input(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Check a submitted activity and return its normalized fields.

    Raises MissingFieldError when category, type, value, unit or date is
    absent or blank, and InvalidArgumentError when a value is unusable:
    value <= 0, a malformed date, an unknown category, or a type that is not
    offered for the category ("other" accepts any type).
    """
    for field in REQUIRED_FIELDS:
        if _is_blank(payload.get(field)):
            raise MissingFieldError(field)

    category = str(payload["category"]).strip().lower()
    if category not in CATEGORIES:
        raise InvalidArgumentError(f"unknown category {payload['category']!r}")

    activity_type = normalize_activity_name(str(payload["type"]))
    if not activity_type:
        raise MissingFieldError("type")
    if category != "other" and activity_type not in ACTIVITY_OPTIONS[category]:
        raise InvalidArgumentError(f"{payload['type']!r} is not a {category} activity")

    notes = payload.get("notes")
    return {
        "category": category,
        "type": activity_type,
        "value": _parse_value(payload["value"]),
        "unit": str(payload["unit"]).strip(),
        "date": _parse_date(payload["date"]),
        "notes": "" if notes is None else str(notes).strip(),
    }


def create_activity(
    user_id: str,
    payload: Mapping[str, Any],
    factors: Mapping[str, float] = EMISSION_FACTORS,
    now: Optional[dt.datetime] = None,
) -> Activity:
    """Validate a submission and compute its emission; the result is ready to store."""
    fields = validate_activity_input(payload)
    created = now or dt.datetime.now(dt.timezone.utc)
    return Activity(
        id=uuid.uuid4().hex,
        user_id=user_id,
        emission=calculate_emission(fields["type"], fields["value"], factors),
        created_at=created.isoformat(),
        **fields,
    )


def update_activity(
    existing: Activity,
    payload: Mapping[str, Any],
    factors: Mapping[str, float] = EMISSION_FACTORS,
) -> Activity:
    """Apply a full edit to an activity; id, owner and creation time are kept."""
    fields = validate_activity_input(payload)
    return replace(
        existing,
        emission=calculate_emission(fields["type"], fields["value"], factors),
        **fields,
    )
