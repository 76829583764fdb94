"""
Channel Tracker

Discovers YouTube channels under a subscriber ceiling, measures them on
a fixed cadence and keeps a history of snapshots in a document store.

Usage:
    from vidhunt import (
        ChannelCollector, ChannelRepository, MemoryDocumentStore,
        ProcessingScheduler, UpdateMode, YouTubeService, build_worklist,
    )

    service = YouTubeService(api_key)
    repository = ChannelRepository(MemoryDocumentStore())
    worklist = build_worklist(
        service, repository,
        mode=UpdateMode.NEW,
        max_subscribers=1_000_000,
        sort_by="viewCount",
        desired_count=10,
    )
    collector = ChannelCollector(service, repository, ["title"], ["averageViewsPerVideo"])
    ProcessingScheduler(collector.collect).run(worklist)
"""

# Configuration and presets
from .config import (
    BATCH_SIZE,
    DEFAULT_DERIVED_FIELDS,
    DEFAULT_STATIC_FIELDS,
    MAX_ANALYZED_VIDEOS,
    PROCESSING_INTERVAL_SECONDS,
    SUBSCRIBER_TIERS,
    YOUTUBE_CATEGORIES,
    Settings,
    load_settings,
    setup_logging,
)

# Errors and models
from .errors import (
    ClassificationError,
    DiscoveryError,
    IndexConsistencyWarning,
    PersistenceError,
    VidHuntError,
)
from .models import ChannelIndex, ClassificationResult, IndexEntry, ItemResult, WorkItem

# YouTube API client
from .youtube_api import YouTubeService

# Field catalog
from .fields import DERIVED_FIELDS, STATIC_FIELDS, resolve_fetch_fields

# Discovery
from .filters import exclude_known_channels, filter_channels_by_subscribers
from .sorting import SORT_OPTIONS, SortOption, sort_candidates
from .finder import find_channels

# Content analysis and metrics
from .classifier import classify_uploads, is_shortform
from .metrics import (
    DurationParseError,
    calculate_channel_age_days,
    derive_metrics,
    parse_iso8601_duration,
    round_to,
    try_parse_duration,
)

# Storage
from .storage import DocumentStore, DriveDocumentStore, MemoryDocumentStore
from .repository import ChannelRepository, RetentionPolicy

# Collection pipeline
from .pipeline import ChannelCollector, UpdateMode, build_worklist
from .scheduler import ProcessingScheduler, SchedulerState

__all__ = [
    # Config
    "BATCH_SIZE",
    "DEFAULT_DERIVED_FIELDS",
    "DEFAULT_STATIC_FIELDS",
    "MAX_ANALYZED_VIDEOS",
    "PROCESSING_INTERVAL_SECONDS",
    "SUBSCRIBER_TIERS",
    "YOUTUBE_CATEGORIES",
    "Settings",
    "load_settings",
    "setup_logging",
    # Errors
    "ClassificationError",
    "DiscoveryError",
    "IndexConsistencyWarning",
    "PersistenceError",
    "VidHuntError",
    # Models
    "ChannelIndex",
    "ClassificationResult",
    "IndexEntry",
    "ItemResult",
    "WorkItem",
    # API
    "YouTubeService",
    # Fields
    "DERIVED_FIELDS",
    "STATIC_FIELDS",
    "resolve_fetch_fields",
    # Discovery
    "exclude_known_channels",
    "filter_channels_by_subscribers",
    "SORT_OPTIONS",
    "SortOption",
    "sort_candidates",
    "find_channels",
    # Analysis
    "classify_uploads",
    "is_shortform",
    "DurationParseError",
    "calculate_channel_age_days",
    "derive_metrics",
    "parse_iso8601_duration",
    "round_to",
    "try_parse_duration",
    # Storage
    "DocumentStore",
    "DriveDocumentStore",
    "MemoryDocumentStore",
    "ChannelRepository",
    "RetentionPolicy",
    # Pipeline
    "ChannelCollector",
    "UpdateMode",
    "build_worklist",
    "ProcessingScheduler",
    "SchedulerState",
]
