"""
Central configuration for the Meal Score ledger.

All shared constants and configuration values should be defined here
to avoid duplication and ensure consistency across modules.
"""

import os
from pathlib import Path

# --- Project Paths ---
PROJECT_ROOT = Path(__file__).parent.parent
DATA_FOLDER = Path(os.environ.get("MEALSCORE_DATA_DIR", PROJECT_ROOT / "data"))
OUTPUT_FOLDER = DATA_FOLDER / "exports"

# --- Ledger Files ---
MEMBERS_FILE = "members.csv"
EVENTS_FILE = "events.csv"
ATTENDEE_SEPARATOR = ";"

MEMBER_COLUMNS = ["id", "name", "active", "created_at"]
EVENT_COLUMNS = [
    "id", "date", "location", "description", "points",
    "created_at", "ip_address", "attendees",
]

# Opt-in starting roster, seeded into an empty ledger on first dashboard load.
# Comma-separated names, e.g. MEALSCORE_INITIAL_MEMBERS="Alice,Bob,Chen"
INITIAL_MEMBERS = tuple(
    name.strip()
    for name in os.environ.get("MEALSCORE_INITIAL_MEMBERS", "").split(",")
    if name.strip()
)

# --- Point Configuration ---
MIN_POINTS = 0
MAX_POINTS = 20

# (max attendees inclusive, suggested points per person)
POINT_TIERS = (
    (1, 0),
    (5, 1),
    (8, 3),
    (15, 5),
)
TOP_TIER_POINTS = 10  # 16 or more attendees

# --- Input Validation ---
MEMBER_NAME_MAX_LENGTH = 80
LOCATION_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500

# --- Leaderboard Configuration ---
ALL_TIME = "all"  # Aggregation window selector covering every year
LEADERBOARD_TOP_N = 5
STANDINGS_EXPORT_PATTERN = "standings_{window}_*.csv"

# --- Submission Origin ---
IP_LOOKUP_URL = "https://ipapi.co/{ip}/json/"
IP_LOOKUP_TIMEOUT = 5  # seconds
IP_CACHE_TTL_SECONDS = 60 * 60 * 24
IP_LOOKUP_USER_AGENT = "meal-score"
LOCAL_NETWORK_LABEL = "Local network"
UNKNOWN_LOCATION_LABEL = "Unknown"
