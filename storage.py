"""
storage.py

CSV-backed stores for activities and users, read and written with pandas.

Every activity operation takes the id of the signed-in user and only ever
reads or changes that user's rows. Asking for someone else's activity looks
exactly like asking for one that does not exist.
"""

from __future__ import annotations

import datetime as dt
import os
import uuid
from typing import Any, List, Mapping, Optional

import pandas as pd

import settings
from activities import Activity, User, create_activity, update_activity
from errors import ActivityNotFoundError, InvalidArgumentError

ACTIVITY_COLUMNS = [
    "id", "user_id", "category", "type", "value", "unit",
    "emission", "date", "notes", "created_at",
]
USER_COLUMNS = ["id", "email", "display_name", "monthly_goal", "created_at"]


def _read_csv(path: str, columns: List[str], numeric: List[str]) -> pd.DataFrame:
    if not os.path.exists(path):
        return pd.DataFrame(columns=columns)
    try:
        df = pd.read_csv(
            path,
            dtype={c: str for c in columns if c not in numeric},
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=columns)
    for c in columns:
        if c not in df.columns:
            df[c] = ""
    return df[columns]


def _write_csv(df: pd.DataFrame, path: str) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    df.to_csv(path, index=False)


class ActivityStore:
    """Activities of all users in one CSV file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.ACTIVITIES_FILE

    def _load(self) -> pd.DataFrame:
        return _read_csv(self.path, ACTIVITY_COLUMNS, numeric=["value", "emission"])

    def list_for_user(self, user_id: str) -> List[Activity]:
        """The user's activities, newest date first."""
        df = self._load()
        df = df[df["user_id"] == user_id]
        if df.empty:
            return []
        df = df.sort_values(["date", "created_at"], ascending=False, kind="stable")
        return [Activity.from_record(row) for row in df.to_dict("records")]

    def get(self, user_id: str, activity_id: str) -> Activity:
        df = self._load()
        match = df[(df["id"] == activity_id) & (df["user_id"] == user_id)]
        if match.empty:
            raise ActivityNotFoundError(activity_id)
        return Activity.from_record(match.iloc[0].to_dict())

    def add(self, user_id: str, payload: Mapping[str, Any]) -> Activity:
        activity = create_activity(user_id, payload)
        df = self._load()
        row = pd.DataFrame([activity.to_record()], columns=ACTIVITY_COLUMNS)
        df = row if df.empty else pd.concat([df, row], ignore_index=True)
        _write_csv(df, self.path)
        return activity

    def update(self, user_id: str, activity_id: str, payload: Mapping[str, Any]) -> Activity:
        activity = update_activity(self.get(user_id, activity_id), payload)
        df = self._load()
        mask = (df["id"] == activity_id) & (df["user_id"] == user_id)
        record = activity.to_record()
        df.loc[mask, ACTIVITY_COLUMNS] = [record[c] for c in ACTIVITY_COLUMNS]
        _write_csv(df, self.path)
        return activity

    def delete(self, user_id: str, activity_id: str) -> None:
        df = self._load()
        mask = (df["id"] == activity_id) & (df["user_id"] == user_id)
        if not mask.any():
            raise ActivityNotFoundError(activity_id)
        _write_csv(df[~mask], self.path)


def _user_from_row(row: Mapping[str, Any]) -> User:
    return User(
        id=str(row["id"]),
        email=str(row["email"]),
        display_name=str(row["display_name"]),
        monthly_goal=int(row["monthly_goal"]),
        created_at=str(row["created_at"]),
    )


def validate_monthly_goal(goal: Any) -> int:
    """Monthly goals are whole, positive kilograms."""
    if isinstance(goal, str) and goal.strip().isdigit():
        goal = int(goal)
    if isinstance(goal, float) and goal.is_integer():
        goal = int(goal)
    if isinstance(goal, bool) or not isinstance(goal, int) or goal <= 0:
        raise InvalidArgumentError(f"monthly goal must be a positive integer, got {goal!r}")
    return goal


class UserStore:
    """User profiles keyed by a generated id; emails are unique."""

    def __init__(self, path: Optional[str] = None, default_goal: Optional[int] = None):
        self.path = path or settings.USERS_FILE
        self.default_goal = default_goal or settings.DEFAULT_MONTHLY_GOAL

    def _load(self) -> pd.DataFrame:
        return _read_csv(self.path, USER_COLUMNS, numeric=["monthly_goal"])

    def sign_in(self, email: str, display_name: str = "") -> User:
        """Return the user registered under this email, creating them on first visit."""
        email = (email or "").strip().lower()
        if not email:
            raise InvalidArgumentError("email is required")

        df = self._load()
        match = df[df["email"].str.lower() == email]
        if not match.empty:
            return _user_from_row(match.iloc[0])

        user = User(
            id=uuid.uuid4().hex,
            email=email,
            display_name=display_name.strip() or email.split("@")[0],
            monthly_goal=self.default_goal,
            created_at=dt.datetime.now(dt.timezone.utc).isoformat(),
        )
        row = pd.DataFrame([user.to_record()], columns=USER_COLUMNS)
        df = row if df.empty else pd.concat([df, row], ignore_index=True)
        _write_csv(df, self.path)
        return user

    def get(self, user_id: str) -> Optional[User]:
        df = self._load()
        match = df[df["id"] == user_id]
        if match.empty:
            return None
        return _user_from_row(match.iloc[0])

    def update_profile(self, user_id: str, display_name: str, monthly_goal: Any) -> User:
        goal = validate_monthly_goal(monthly_goal)
        df = self._load()
        mask = df["id"] == user_id
        if not mask.any():
            raise LookupError(f"unknown user {user_id}")
        if display_name and display_name.strip():
            df.loc[mask, "display_name"] = display_name.strip()
        df.loc[mask, "monthly_goal"] = goal
        _write_csv(df, self.path)
        return _user_from_row(df[mask].iloc[0])
