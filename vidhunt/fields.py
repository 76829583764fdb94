"""
Field Catalog

Which channel fields can be requested, which API part carries each one,
and which primary fields every derived metric depends on. The collector
resolves a run's requested fields against these tables once per run.
"""

from typing import Dict, FrozenSet, Iterable, List, Set

# ============================================================================
# PRIMARY FIELDS
# ============================================================================

# Static profile field -> channels.list part that carries it
STATIC_FIELDS: Dict[str, str] = {
    'title': 'snippet',
    'description': 'snippet',
    'customUrl': 'snippet',
    'publishedAt': 'snippet',
    'country': 'snippet',
    'defaultLanguage': 'snippet',
    'thumbnailUrl': 'snippet',
    'thumbnailDefault': 'snippet',
    'thumbnailMedium': 'snippet',
    'thumbnailHigh': 'snippet',
    'keywords': 'brandingSettings',
    'bannerExternalUrl': 'brandingSettings',
    'unsubscribedTrailer': 'brandingSettings',
    'uploadsPlaylistId': 'contentDetails',
    'topicIds': 'topicDetails',
    'topicCategories': 'topicDetails',
    'privacyStatus': 'status',
    'isLinked': 'status',
    'longUploadsStatus': 'status',
    'madeForKids': 'status',
    'selfDeclaredMadeForKids': 'status',
}

# Time-varying counters stored in each snapshot
SNAPSHOT_FIELDS: Dict[str, str] = {
    'subscriberCount': 'statistics',
    'viewCount': 'statistics',
    'videoCount': 'statistics',
    'hiddenSubscriberCount': 'statistics',
}

# ============================================================================
# DERIVED FIELDS
# ============================================================================

_GROWTH = {'publishedAt'}
_CLASSIFY = {'uploadsPlaylistId'}

METRIC_DEPENDENCIES: Dict[str, FrozenSet[str]] = {
    'averageViewsPerVideo': frozenset({'viewCount', 'videoCount'}),
    'subscribersPerVideo': frozenset({'subscriberCount', 'viewCount'}),
    'subscriberToViewRatioPercent': frozenset({'subscriberCount', 'viewCount'}),
    'viewsPerSubscriber': frozenset({'subscriberCount', 'viewCount'}),
    'channelAgeInDays': frozenset(_GROWTH),
    'uploadsPerWeek': frozenset(_GROWTH | {'videoCount'}),
    'uploadsPerMonth': frozenset(_GROWTH | {'videoCount'}),
    'subsGainedPerDay': frozenset(_GROWTH | {'subscriberCount'}),
    'subsGainedPerMonth': frozenset(_GROWTH | {'subscriberCount'}),
    'subsGainedPerYear': frozenset(_GROWTH | {'subscriberCount'}),
    'viewsGainedPerDay': frozenset(_GROWTH | {'viewCount'}),
    'viralIndex': frozenset(_GROWTH | {'subscriberCount', 'viewCount', 'videoCount'}),
    'shortsCount': frozenset(_CLASSIFY),
    'longformCount': frozenset(_CLASSIFY | {'videoCount'}),
    'totalShortsDuration': frozenset(_CLASSIFY),
    'estimatedShortsViews': frozenset(_CLASSIFY | {'viewCount'}),
    'estimatedLongformViews': frozenset(_CLASSIFY | {'viewCount'}),
    'shortsViewsPercentage': frozenset(_CLASSIFY | {'viewCount'}),
    'longformViewsPercentage': frozenset(_CLASSIFY | {'viewCount'}),
}

DERIVED_FIELDS: FrozenSet[str] = frozenset(METRIC_DEPENDENCIES)

# Metrics that need the upload history to be classified
CLASSIFICATION_METRICS: FrozenSet[str] = frozenset(
    name for name, deps in METRIC_DEPENDENCIES.items() if 'uploadsPlaylistId' in deps
)

# Order in which parts are requested (stable for caching and tests)
_PART_ORDER = ['snippet', 'statistics', 'brandingSettings', 'contentDetails', 'topicDetails', 'status']


def resolve_fetch_fields(static_fields: Iterable[str], derived_fields: Iterable[str]) -> Set[str]:
    """
    Union of explicitly requested primary fields and everything the
    requested derived metrics depend on.

    Raises:
        ValueError: If a field name is not in the catalog
    """
    fields = set(static_fields)
    unknown = fields - set(STATIC_FIELDS) - set(SNAPSHOT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")

    for metric in derived_fields:
        if metric not in METRIC_DEPENDENCIES:
            raise ValueError(f"Unknown derived metric: {metric}")
        fields |= METRIC_DEPENDENCIES[metric]

    return fields


def needs_classification(derived_fields: Iterable[str]) -> bool:
    """True if any content or view analysis metric is requested."""
    return any(name in CLASSIFICATION_METRICS for name in derived_fields)


def parts_for_fields(fields: Iterable[str]) -> List[str]:
    """API parts required to populate the given primary fields."""
    catalog = {**STATIC_FIELDS, **SNAPSHOT_FIELDS}
    needed = {catalog[f] for f in fields if f in catalog}
    # The title is always used for logs and the index
    needed.add('snippet')
    return [part for part in _PART_ORDER if part in needed]
