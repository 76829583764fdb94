"""
Configuration and Presets

Central configuration for the channel tracker.
All tunable values, filter presets and environment settings are defined here.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# ============================================================================
# GLOBAL CONFIGURATION
# ============================================================================

BATCH_SIZE = 50  # Max IDs per batch request / items per page
MAX_ANALYZED_VIDEOS = 1000  # Upload history cap for content analysis
SHORTFORM_MAX_SECONDS = 60
SHORTS_AVERAGE_SECONDS = 60  # Assumed length when estimating total shorts duration
REQUEST_DELAY_SECONDS = 0.1
PROCESSING_INTERVAL_SECONDS = 5.0

DEFAULT_MAX_SUBSCRIBERS = 1_000_000_000
DEFAULT_SEARCH_KEYWORD = "popular"
DEFAULT_CHANNEL_COUNT = 50
HISTORY_MAX_MONTHS = 24

INDEX_FILE_NAME = "_channel_index.json"
CHANNELS_FOLDER = "channels"
COLLECTIONS_FOLDER = "collections"

DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25
MS_PER_DAY = 86_400_000

# ============================================================================
# FILTER PRESETS
# ============================================================================

SUBSCRIBER_TIERS = {
    "<= 1B": 1_000_000_000,
    "<= 500M": 500_000_000,
    "<= 100M": 100_000_000,
    "<= 50M": 50_000_000,
    "<= 10M": 10_000_000,
    "<= 5M": 5_000_000,
    "<= 1M": 1_000_000,
    "<= 500K": 500_000,
    "<= 100K": 100_000,
    "<= 50K": 50_000,
    "<= 10K": 10_000,
    "<= 1K": 1_000,
}

YOUTUBE_CATEGORIES = {
    "": "All categories",
    "1": "Film & Animation",
    "2": "Autos & Vehicles",
    "10": "Music",
    "15": "Pets & Animals",
    "17": "Sports",
    "19": "Travel & Events",
    "20": "Gaming",
    "22": "People & Blogs",
    "23": "Comedy",
    "24": "Entertainment",
    "25": "News & Politics",
    "26": "Howto & Style",
    "27": "Education",
    "28": "Science & Technology",
}

DEFAULT_STATIC_FIELDS = frozenset({'title', 'subscriberCount', 'viewCount', 'videoCount', 'publishedAt'})
DEFAULT_DERIVED_FIELDS = frozenset({'averageViewsPerVideo', 'subsGainedPerDay'})

RETENTION_APPEND_ALL = "append-all"
RETENTION_LATEST_WITH_HISTORY = "latest-only+history"

# ============================================================================
# ENVIRONMENT SETTINGS
# ============================================================================


@dataclass(frozen=True)
class Settings:
    """Values read from the environment (.env supported)."""
    youtube_api_key: Optional[str]
    drive_folder_id: str
    google_access_token: Optional[str]
    retention_policy: str
    interval_seconds: float
    log_level: str


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from environment variables, reading a .env file first.

    Args:
        env_file: Optional explicit path to a .env file

    Returns:
        Settings instance
    """
    load_dotenv(env_file)

    return Settings(
        youtube_api_key=os.getenv('YOUTUBE_API_KEY'),
        drive_folder_id=os.getenv('DRIVE_FOLDER_ID', 'root'),
        google_access_token=os.getenv('GOOGLE_ACCESS_TOKEN'),
        retention_policy=os.getenv('VIDHUNT_RETENTION_POLICY', RETENTION_APPEND_ALL),
        interval_seconds=float(os.getenv('VIDHUNT_INTERVAL_SECONDS', PROCESSING_INTERVAL_SECONDS)),
        log_level=os.getenv('VIDHUNT_LOG_LEVEL', 'INFO'),
    )

# ============================================================================
# LOGGING SETUP
# ============================================================================


def setup_logging(level: str = 'INFO'):
    """Configure root logging with timestamped, severity-tagged lines."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
