"""
Content Classification

Splits a channel's recent uploads into short-form and long-form by
duration and totals the views of the short-form items. The upload
history is capped so that very large channels cost a bounded number
of API calls.
"""

import logging
from typing import Optional

from .config import MAX_ANALYZED_VIDEOS, SHORTFORM_MAX_SECONDS
from .metrics import try_parse_duration
from .models import ClassificationResult
from .youtube_api import YouTubeService

logger = logging.getLogger(__name__)


def is_shortform(duration_seconds: Optional[int]) -> bool:
    """Short-form means a known duration of at most 60 seconds; unknown counts as long-form."""
    return duration_seconds is not None and duration_seconds <= SHORTFORM_MAX_SECONDS


def classify_uploads(
    service: YouTubeService,
    uploads_playlist_id: str,
    max_videos: int = MAX_ANALYZED_VIDEOS,
) -> ClassificationResult:
    """
    Classify up to max_videos of the channel's latest uploads.

    Args:
        service: YouTubeService instance
        uploads_playlist_id: The channel's uploads playlist ID
        max_videos: Cap on enumerated uploads

    Returns:
        ClassificationResult over the enumerated uploads

    Raises:
        ClassificationError: When listing uploads or fetching video details fails
    """
    video_ids = service.list_upload_video_ids(uploads_playlist_id, limit=max_videos)
    details = service.get_video_details(video_ids) if video_ids else {}

    shortform_count = 0
    shortform_views = 0
    unknown = 0

    for video_id in video_ids:
        video = details.get(video_id)
        if video is None:
            # Deleted or private items have no details
            unknown += 1
            continue

        seconds = try_parse_duration(video.get('duration'))
        if seconds is None:
            unknown += 1
        if is_shortform(seconds):
            shortform_count += 1
            shortform_views += video.get('viewCount', 0)

    if unknown:
        logger.debug(f"{unknown} uploads in {uploads_playlist_id} had no usable duration")

    logger.info(
        f"Classified {len(video_ids)} uploads in {uploads_playlist_id}: "
        f"{shortform_count} short-form"
    )
    return ClassificationResult(
        shortform_count=shortform_count,
        total_analyzed=len(video_ids),
        shortform_view_total=shortform_views,
    )
