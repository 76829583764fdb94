"""
Metrics Calculations

Duration parsing for upload classification and the derived-metrics
engine that turns a primary statistics snapshot (plus optional channel
age and content classification) into growth and content-mix figures.
"""

import math
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional

from .config import (
    DAYS_PER_MONTH,
    DAYS_PER_YEAR,
    MAX_ANALYZED_VIDEOS,
    MS_PER_DAY,
    SHORTS_AVERAGE_SECONDS,
)
from .models import ClassificationResult


# ============================================================================
# DURATION PARSING
# ============================================================================

_DURATION_PATTERN = re.compile(
    r'^P(?:(\d+)W)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$'
)


class DurationParseError(ValueError):
    """Raised when a duration string is not a valid ISO 8601 duration."""
    pass


def parse_iso8601_duration(duration: str) -> int:
    """
    Parse ISO 8601 duration (PT1H23M45S, P1DT2H) to seconds.

    Args:
        duration: ISO 8601 duration string

    Returns:
        Duration in whole seconds

    Raises:
        DurationParseError: If the string is empty or malformed
    """
    if not duration:
        raise DurationParseError("Empty duration")

    match = _DURATION_PATTERN.match(duration.strip())
    if not match or not any(match.groups()) or duration.strip().endswith('T'):
        raise DurationParseError(f"Malformed duration: {duration!r}")

    weeks, days, hours, minutes, seconds = match.groups()

    total = (
        int(weeks or 0) * 7 * 86400
        + int(days or 0) * 86400
        + int(hours or 0) * 3600
        + int(minutes or 0) * 60
    )
    return total + int(float(seconds or 0))


def try_parse_duration(duration: Optional[str]) -> Optional[int]:
    """Parse a duration, returning None when it is missing or malformed."""
    try:
        return parse_iso8601_duration(duration or '')
    except DurationParseError:
        return None


# ============================================================================
# NUMERIC HELPERS
# ============================================================================

def round_to(value: float, digits: int = 0):
    """
    Round half away from zero to a fixed number of decimals.

    Integer rounding returns an int, decimal rounding a float.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def to_int(value) -> Optional[int]:
    """Counters arrive as strings from the API; None when absent or not numeric."""
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION_PATTERN = re.compile(r'\.(\d+)')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by the API."""
    if not value:
        return None
    normalized = value.strip().replace('Z', '+00:00')
    normalized = _FRACTION_PATTERN.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), normalized, count=1)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def calculate_channel_age_days(published_at: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """
    Whole days elapsed since the channel was created.

    Args:
        published_at: Channel creation timestamp (RFC 3339)
        now: Reference time, defaults to the current UTC time

    Returns:
        Age in days, or None if the creation date is missing or unparseable
    """
    published = parse_timestamp(published_at)
    if published is None:
        return None

    now = now or datetime.now(timezone.utc)
    elapsed_ms = (now - published).total_seconds() * 1000
    return math.floor(elapsed_ms / MS_PER_DAY)


# ============================================================================
# DERIVED METRICS
# ============================================================================

def derive_metrics(
    snapshot: Dict,
    published_at: Optional[str] = None,
    classification: Optional[ClassificationResult] = None,
    requested_fields: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> Dict:
    """
    Compute the requested derived metrics for one statistics snapshot.

    A metric is emitted only when it was requested and its operands are
    present and non-zero where they divide. Missing inputs suppress the
    metric silently.

    Args:
        snapshot: Primary counters (subscriberCount, viewCount, videoCount)
        published_at: Channel creation timestamp
        classification: Upload classification, if content analysis ran
        requested_fields: Metric names to compute
        now: Reference time for age-based metrics

    Returns:
        Dict mapping metric name to value
    """
    requested = set(requested_fields)
    metrics: Dict = {}

    subscribers = to_int(snapshot.get('subscriberCount'))
    views = to_int(snapshot.get('viewCount'))
    videos = to_int(snapshot.get('videoCount'))
    age_days = calculate_channel_age_days(published_at, now)

    def wants(name: str) -> bool:
        return name in requested

    # Ratios on primary counters
    if wants('averageViewsPerVideo') and views is not None and videos:
        metrics['averageViewsPerVideo'] = round_to(views / videos)

    if views:
        if wants('subscribersPerVideo') and subscribers is not None:
            metrics['subscribersPerVideo'] = round_to((subscribers / views) * 100, 4)
        if wants('subscriberToViewRatioPercent') and subscribers is not None:
            metrics['subscriberToViewRatioPercent'] = round_to((subscribers / views) * 100, 4)

    if wants('viewsPerSubscriber') and views is not None and subscribers:
        metrics['viewsPerSubscriber'] = round_to((views / subscribers) * 100, 2)

    # Age-based growth
    if wants('channelAgeInDays') and age_days is not None:
        metrics['channelAgeInDays'] = age_days

    if age_days is not None and age_days > 0:
        if videos is not None:
            if wants('uploadsPerWeek'):
                metrics['uploadsPerWeek'] = round_to(videos / (age_days / 7), 2)
            if wants('uploadsPerMonth'):
                metrics['uploadsPerMonth'] = round_to(videos / (age_days / DAYS_PER_MONTH), 2)

        if subscribers is not None:
            subs_per_day = subscribers / age_days
            if wants('subsGainedPerDay'):
                metrics['subsGainedPerDay'] = round_to(subs_per_day)
            if wants('subsGainedPerMonth'):
                metrics['subsGainedPerMonth'] = round_to(subs_per_day * DAYS_PER_MONTH)
            if wants('subsGainedPerYear'):
                metrics['subsGainedPerYear'] = round_to(subs_per_day * DAYS_PER_YEAR)

        if views is not None and wants('viewsGainedPerDay'):
            metrics['viewsGainedPerDay'] = round_to(views / age_days)

        if wants('viralIndex') and subscribers is not None and views and videos:
            conversion_rate = subscribers / views
            avg_views_per_video = views / videos
            metrics['viralIndex'] = round_to(conversion_rate * 100 + avg_views_per_video / 1_000_000)

    if classification is None:
        return metrics

    # Content analysis
    shorts = classification.shortform_count
    if wants('shortsCount'):
        metrics['shortsCount'] = shorts
    if wants('longformCount'):
        analyzed = min(videos, MAX_ANALYZED_VIDEOS) if videos is not None else classification.total_analyzed
        metrics['longformCount'] = analyzed - shorts
    if wants('totalShortsDuration'):
        metrics['totalShortsDuration'] = shorts * SHORTS_AVERAGE_SECONDS

    # View analysis
    if views is not None:
        shorts_views = classification.shortform_view_total
        longform_views = max(0, views - shorts_views)
        if wants('estimatedShortsViews'):
            metrics['estimatedShortsViews'] = shorts_views
        if wants('estimatedLongformViews'):
            metrics['estimatedLongformViews'] = longform_views
        if views > 0:
            if wants('shortsViewsPercentage'):
                metrics['shortsViewsPercentage'] = round_to((shorts_views / views) * 100, 2)
            if wants('longformViewsPercentage'):
                metrics['longformViewsPercentage'] = round_to((longform_views / views) * 100, 2)

    return metrics
