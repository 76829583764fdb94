"""Tests for duration parsing and derived metrics."""

from datetime import datetime, timezone

import pytest

from vidhunt.metrics import (
    DurationParseError,
    calculate_channel_age_days,
    derive_metrics,
    parse_iso8601_duration,
    parse_timestamp,
    round_to,
    try_parse_duration,
)
from vidhunt.fields import DERIVED_FIELDS
from vidhunt.models import ClassificationResult

NOW = datetime(2024, 2, 20, 13, 42, 0, tzinfo=timezone.utc)


class TestParseDuration:
    @pytest.mark.parametrize("duration,expected", [
        ("PT1H2M3S", 3723),
        ("PT45S", 45),
        ("PT10M", 600),
        ("PT1M", 60),
        ("PT1M1S", 61),
        ("P1DT1H", 90000),
        ("P1W", 604800),
        ("P0D", 0),
        ("PT1.9S", 1),
    ])
    def test_valid(self, duration, expected):
        assert parse_iso8601_duration(duration) == expected

    @pytest.mark.parametrize("duration", ["", "P", "PT", "1H2M", "PT1X", "garbage"])
    def test_malformed(self, duration):
        with pytest.raises(DurationParseError):
            parse_iso8601_duration(duration)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_iso8601_duration("nope")

    def test_try_parse_returns_none(self):
        assert try_parse_duration(None) is None
        assert try_parse_duration("bad") is None
        assert try_parse_duration("PT30S") == 30


class TestRounding:
    def test_half_up(self):
        assert round_to(2.5) == 3
        assert round_to(3.5) == 4
        assert round_to(0.125, 2) == 0.13

    def test_integer_result(self):
        assert isinstance(round_to(10.2), int)
        assert isinstance(round_to(10.2, 2), float)


class TestChannelAge:
    def test_whole_days(self):
        assert calculate_channel_age_days("2012-02-20T13:42:00Z", NOW) == 4383

    def test_partial_day_floors(self):
        now = datetime(2024, 1, 2, 11, 0, tzinfo=timezone.utc)
        assert calculate_channel_age_days("2024-01-01T12:00:00Z", now) == 0

    def test_missing_or_bad(self):
        assert calculate_channel_age_days(None, NOW) is None
        assert calculate_channel_age_days("yesterday", NOW) is None

    def test_odd_fraction_lengths(self):
        assert parse_timestamp("2012-02-20T13:42:04.92Z").microsecond == 920000
        assert parse_timestamp("2012-02-20T13:42:04.1234567Z").microsecond == 123456
        assert calculate_channel_age_days("2012-02-20T13:42:04.5Z", NOW) == 4382


class TestDeriveMetrics:
    def test_reference_channel(self):
        snapshot = {"subscriberCount": "430000000", "viewCount": "94080649435", "videoCount": "897"}
        metrics = derive_metrics(
            snapshot,
            published_at="2012-02-20T13:42:00Z",
            requested_fields={"averageViewsPerVideo", "subsGainedPerDay"},
            now=NOW,
        )
        assert metrics == {"averageViewsPerVideo": 104883667, "subsGainedPerDay": 98106}

    def test_only_requested_fields(self):
        snapshot = {"subscriberCount": 100, "viewCount": 1000, "videoCount": 10}
        metrics = derive_metrics(snapshot, requested_fields={"averageViewsPerVideo"})
        assert list(metrics) == ["averageViewsPerVideo"]

    def test_ratios(self):
        snapshot = {"subscriberCount": 250, "viewCount": 1000, "videoCount": 4}
        metrics = derive_metrics(
            snapshot,
            requested_fields={"subscribersPerVideo", "viewsPerSubscriber", "subscriberToViewRatioPercent"},
        )
        assert metrics["subscribersPerVideo"] == 25.0
        assert metrics["subscriberToViewRatioPercent"] == 25.0
        assert metrics["viewsPerSubscriber"] == 400.0

    def test_growth_rates(self):
        snapshot = {"subscriberCount": 1000, "viewCount": 70000, "videoCount": 70}
        metrics = derive_metrics(
            snapshot,
            published_at="2024-01-21T13:42:00Z",  # 30 days before NOW
            requested_fields={
                "channelAgeInDays", "uploadsPerWeek", "uploadsPerMonth",
                "subsGainedPerDay", "subsGainedPerMonth", "subsGainedPerYear", "viewsGainedPerDay",
            },
            now=NOW,
        )
        assert metrics["channelAgeInDays"] == 30
        assert metrics["uploadsPerWeek"] == round_to(70 / (30 / 7), 2)
        assert metrics["uploadsPerMonth"] == round_to(70 / (30 / 30.44), 2)
        assert metrics["subsGainedPerDay"] == 33
        assert metrics["subsGainedPerMonth"] == round_to(1000 / 30 * 30.44)
        assert metrics["subsGainedPerYear"] == round_to(1000 / 30 * 365.25)
        assert metrics["viewsGainedPerDay"] == 2333

    def test_viral_index(self):
        snapshot = {"subscriberCount": 1000, "viewCount": 10_000_000, "videoCount": 5}
        metrics = derive_metrics(
            snapshot,
            published_at="2020-01-01T00:00:00Z",
            requested_fields={"viralIndex"},
            now=NOW,
        )
        # 0.01 + 2.0
        assert metrics["viralIndex"] == 2

    def test_zero_divisors_suppress_metrics(self):
        snapshot = {"subscriberCount": 0, "viewCount": 0, "videoCount": 0}
        metrics = derive_metrics(
            snapshot,
            published_at=NOW.isoformat(),
            classification=ClassificationResult(0, 0, 0),
            requested_fields=DERIVED_FIELDS,
            now=NOW,
        )
        for name in ("averageViewsPerVideo", "subscribersPerVideo", "viewsPerSubscriber",
                     "uploadsPerWeek", "subsGainedPerDay", "viralIndex",
                     "shortsViewsPercentage", "longformViewsPercentage"):
            assert name not in metrics
        assert metrics["channelAgeInDays"] == 0
        assert metrics["estimatedShortsViews"] == 0

    def test_missing_inputs_suppress_metrics(self):
        metrics = derive_metrics({}, requested_fields=DERIVED_FIELDS, now=NOW)
        assert metrics == {}

    def test_classification_metrics(self):
        snapshot = {"subscriberCount": 100, "viewCount": 10000, "videoCount": 40}
        classification = ClassificationResult(shortform_count=15, total_analyzed=40, shortform_view_total=2500)
        metrics = derive_metrics(
            snapshot,
            classification=classification,
            requested_fields={
                "shortsCount", "longformCount", "totalShortsDuration",
                "estimatedShortsViews", "estimatedLongformViews",
                "shortsViewsPercentage", "longformViewsPercentage",
            },
        )
        assert metrics["shortsCount"] == 15
        assert metrics["longformCount"] == 25
        assert metrics["shortsCount"] + metrics["longformCount"] == classification.total_analyzed
        assert metrics["totalShortsDuration"] == 900
        assert metrics["estimatedShortsViews"] + metrics["estimatedLongformViews"] == 10000
        assert metrics["shortsViewsPercentage"] == 25.0
        assert metrics["longformViewsPercentage"] == 75.0

    def test_longform_count_capped_at_analyzed_history(self):
        snapshot = {"viewCount": 1, "videoCount": 5000}
        classification = ClassificationResult(shortform_count=300, total_analyzed=1000, shortform_view_total=0)
        metrics = derive_metrics(snapshot, classification=classification, requested_fields={"longformCount"})
        assert metrics["longformCount"] == 700

    def test_shortform_views_exceeding_total_floor_at_zero(self):
        snapshot = {"viewCount": 100, "videoCount": 3}
        classification = ClassificationResult(shortform_count=3, total_analyzed=3, shortform_view_total=150)
        metrics = derive_metrics(
            snapshot,
            classification=classification,
            requested_fields={"estimatedLongformViews", "shortsViewsPercentage"},
        )
        assert metrics["estimatedLongformViews"] == 0
        assert metrics["shortsViewsPercentage"] == 150.0

    def test_classification_metrics_absent_without_classification(self):
        snapshot = {"viewCount": 100, "videoCount": 3}
        metrics = derive_metrics(snapshot, requested_fields={"shortsCount", "estimatedShortsViews"})
        assert metrics == {}

    def test_idempotent(self):
        snapshot = {"subscriberCount": "1234", "viewCount": "98765", "videoCount": "21"}
        classification = ClassificationResult(4, 21, 300)
        kwargs = dict(
            published_at="2019-06-01T00:00:00Z",
            classification=classification,
            requested_fields=DERIVED_FIELDS,
            now=NOW,
        )
        assert derive_metrics(snapshot, **kwargs) == derive_metrics(snapshot, **kwargs)


class TestClassificationResult:
    def test_rejects_more_shorts_than_analyzed(self):
        with pytest.raises(ValueError):
            ClassificationResult(shortform_count=5, total_analyzed=4, shortform_view_total=0)

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            ClassificationResult(shortform_count=-1, total_analyzed=4, shortform_view_total=0)
