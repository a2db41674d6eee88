"""
settings.py

Runtime configuration, read from the environment (and a .env file if present).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Zone used to decide what "today", "this week" and "this month" mean.
TIMEZONE = os.getenv("TRACKER_TIMEZONE", "UTC")

DATA_DIR = os.getenv("TRACKER_DATA_DIR", os.path.dirname(os.path.abspath(__file__)))
ACTIVITIES_FILE = os.path.join(DATA_DIR, "activities.csv")
USERS_FILE = os.path.join(DATA_DIR, "users.csv")

DEFAULT_MONTHLY_GOAL = int(os.getenv("TRACKER_MONTHLY_GOAL", "500"))
DEFAULT_TREND_DAYS = int(os.getenv("TRACKER_TREND_DAYS", "14"))

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
