"""
YouTube API Client

Service class for interacting with the YouTube Data API v3.
Handles channel search, channel statistics and profile retrieval,
upload playlist paging and video detail lookups.
"""

import logging
import time
from typing import Dict, Iterable, List, Optional, Tuple

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import BATCH_SIZE, MAX_ANALYZED_VIDEOS, REQUEST_DELAY_SECONDS
from .errors import ClassificationError, DiscoveryError
from .fields import SNAPSHOT_FIELDS, STATIC_FIELDS, parts_for_fields

logger = logging.getLogger(__name__)


def describe_http_error(error: HttpError) -> Tuple[str, Optional[int]]:
    """Extract the upstream message and HTTP status from an HttpError."""
    status = getattr(getattr(error, 'resp', None), 'status', None)
    reason = getattr(error, 'reason', None) or str(error)
    return reason, int(status) if status is not None else None


class YouTubeService:
    """Service class for interacting with YouTube Data API v3."""

    def __init__(self, api_key: str, client=None, request_delay: float = REQUEST_DELAY_SECONDS):
        """
        Initialize YouTube API client.

        Args:
            api_key: YouTube Data API v3 key
            client: Pre-built API resource (skips discovery, used by tests)
            request_delay: Seconds to wait between paged calls

        Raises:
            ValueError: If api_key is empty or None
        """
        if not api_key:
            raise ValueError("API key is required")

        self._youtube = client or build('youtube', 'v3', developerKey=api_key, cache_discovery=False)
        self.request_delay = request_delay
        logger.info("YouTube service initialized successfully")

    def _pause(self):
        # Be respectful with API calls
        if self.request_delay > 0:
            time.sleep(self.request_delay)

    # ------------------------------------------------------------------
    # SEARCH
    # ------------------------------------------------------------------

    def search_channel_page(
        self,
        keyword: str,
        order: str = 'relevance',
        category_id: Optional[str] = None,
        page_token: Optional[str] = None,
        max_results: int = BATCH_SIZE,
    ) -> Tuple[List[str], Optional[str]]:
        """
        Fetch one page of channel candidates for a keyword.

        Category filtering is only supported by the API on video search, so
        with a category the channels are taken from matching videos.

        Args:
            keyword: Search keyword
            order: API sort order (relevance, viewCount, videoCount, date)
            category_id: Optional video category id
            page_token: Continuation token from the previous page
            max_results: Page size (API max is 50)

        Returns:
            Tuple of (unique channel ids in page order, next page token or None)

        Raises:
            DiscoveryError: On quota, auth or request errors
        """
        params = {
            'q': keyword,
            'part': 'id,snippet',
            'maxResults': min(max_results, BATCH_SIZE),
            'order': order,
        }
        if category_id:
            params['type'] = 'video'
            params['videoCategoryId'] = category_id
        else:
            params['type'] = 'channel'
        if page_token:
            params['pageToken'] = page_token

        try:
            response = self._youtube.search().list(**params).execute()
        except HttpError as e:
            message, status = describe_http_error(e)
            logger.warning(f"Error searching for '{keyword}': {message}")
            raise DiscoveryError(f"Channel search failed: {message}", status=status) from e

        channel_ids: List[str] = []
        for item in response.get('items', []):
            channel_id = item.get('snippet', {}).get('channelId') or item.get('id', {}).get('channelId')
            if channel_id and channel_id not in channel_ids:
                channel_ids.append(channel_id)

        return channel_ids, response.get('nextPageToken')

    # ------------------------------------------------------------------
    # CHANNELS
    # ------------------------------------------------------------------

    def get_channel_statistics(self, channel_ids: List[str]) -> Dict[str, Dict]:
        """
        Fetch primary counters for channels.

        Args:
            channel_ids: List of channel IDs

        Returns:
            Dict mapping channel_id to stats dict with subscriberCount,
            videoCount, viewCount and hiddenSubscriberCount

        Raises:
            DiscoveryError: On quota, auth or request errors
        """
        stats = {}

        if not channel_ids:
            return stats

        try:
            # Batch requests - max 50 channel IDs per request
            for i in range(0, len(channel_ids), BATCH_SIZE):
                batch = channel_ids[i:i + BATCH_SIZE]

                request = self._youtube.channels().list(
                    part='statistics',
                    id=','.join(batch)
                )
                response = request.execute()

                for item in response.get('items', []):
                    statistics = item.get('statistics', {})
                    stats[item['id']] = {
                        'subscriberCount': int(statistics.get('subscriberCount', 0)),
                        'videoCount': int(statistics.get('videoCount', 0)),
                        'viewCount': int(statistics.get('viewCount', 0)),
                        'hiddenSubscriberCount': bool(statistics.get('hiddenSubscriberCount', False)),
                    }

                if i + BATCH_SIZE < len(channel_ids):
                    self._pause()

            return stats

        except HttpError as e:
            message, status = describe_http_error(e)
            logger.warning(f"Error fetching channel statistics: {message}")
            raise DiscoveryError(f"Channel statistics lookup failed: {message}", status=status) from e

    def fetch_channel(self, channel_id: str, fields: Iterable[str]) -> Tuple[Dict, Dict]:
        """
        Fetch the selected profile fields and counters for one channel.

        Args:
            channel_id: Channel ID
            fields: Primary field names to extract (see fields.py)

        Returns:
            Tuple of (static profile dict, snapshot counters dict)

        Raises:
            DiscoveryError: If the lookup fails or the channel does not exist
        """
        fields = set(fields)
        parts = parts_for_fields(fields)

        try:
            response = self._youtube.channels().list(
                part=','.join(parts),
                id=channel_id
            ).execute()
        except HttpError as e:
            message, status = describe_http_error(e)
            raise DiscoveryError(f"Channel lookup failed for {channel_id}: {message}", status=status) from e

        items = response.get('items', [])
        if not items:
            raise DiscoveryError(f"Channel not found: {channel_id}", status=404)

        flat = flatten_channel_item(items[0])

        profile = {'title': flat.get('title', '')}
        for name in STATIC_FIELDS:
            if name in fields and name in flat:
                profile[name] = flat[name]

        snapshot = {}
        for name in SNAPSHOT_FIELDS:
            if name in fields and name in flat:
                snapshot[name] = flat[name]

        return profile, snapshot

    def resolve_handle(self, handle: str) -> str:
        """
        Convert a channel handle (@name) into a channel ID.

        Raises:
            DiscoveryError: If the lookup fails or no channel has the handle
        """
        handle = handle.strip()
        if not handle.startswith('@'):
            handle = f"@{handle}"

        try:
            response = self._youtube.channels().list(part='id', forHandle=handle).execute()
        except HttpError as e:
            message, status = describe_http_error(e)
            raise DiscoveryError(f"Handle lookup failed for {handle}: {message}", status=status) from e

        items = response.get('items', [])
        if not items:
            raise DiscoveryError(f"No channel found for handle {handle}", status=404)
        return items[0]['id']

    # ------------------------------------------------------------------
    # UPLOADS
    # ------------------------------------------------------------------

    def list_upload_video_ids(self, uploads_playlist_id: str, limit: int = MAX_ANALYZED_VIDEOS) -> List[str]:
        """
        Page through a channel's uploads playlist, newest first.

        Args:
            uploads_playlist_id: The playlist ID for the channel's uploads
            limit: Stop once this many video IDs have been enumerated

        Returns:
            Up to `limit` video IDs

        Raises:
            ClassificationError: On API errors
        """
        video_ids: List[str] = []
        next_page_token = None

        try:
            while len(video_ids) < limit:
                response = self._youtube.playlistItems().list(
                    part='contentDetails',
                    playlistId=uploads_playlist_id,
                    maxResults=min(BATCH_SIZE, limit - len(video_ids)),
                    pageToken=next_page_token
                ).execute()

                for item in response.get('items', []):
                    if len(video_ids) >= limit:
                        break
                    video_id = item.get('contentDetails', {}).get('videoId')
                    if video_id:
                        video_ids.append(video_id)

                next_page_token = response.get('nextPageToken')
                if not next_page_token:
                    break

                self._pause()

            return video_ids

        except HttpError as e:
            message, _ = describe_http_error(e)
            logger.warning(f"Error fetching playlist items for {uploads_playlist_id}: {message}")
            raise ClassificationError(f"Upload listing failed: {message}") from e

    def get_video_details(self, video_ids: List[str]) -> Dict[str, Dict]:
        """
        Fetch duration and view count for videos.

        Args:
            video_ids: List of video IDs

        Returns:
            Dict mapping video_id to dict with duration (ISO 8601) and viewCount

        Raises:
            ClassificationError: On API errors
        """
        details = {}

        try:
            # Batch requests - max 50 video IDs per request
            for i in range(0, len(video_ids), BATCH_SIZE):
                batch = video_ids[i:i + BATCH_SIZE]

                response = self._youtube.videos().list(
                    part='contentDetails,statistics',
                    id=','.join(batch)
                ).execute()

                for item in response.get('items', []):
                    details[item['id']] = {
                        'duration': item.get('contentDetails', {}).get('duration', ''),
                        'viewCount': int(item.get('statistics', {}).get('viewCount', 0)),
                    }

                if i + BATCH_SIZE < len(video_ids):
                    self._pause()

            return details

        except HttpError as e:
            message, _ = describe_http_error(e)
            logger.warning(f"Error fetching video details: {message}")
            raise ClassificationError(f"Video lookup failed: {message}") from e


def flatten_channel_item(item: Dict) -> Dict:
    """
    Flatten a channels.list item into field-name -> value.

    Counters are kept as the strings the API returns.
    """
    snippet = item.get('snippet', {})
    statistics = item.get('statistics', {})
    branding = item.get('brandingSettings', {}).get('channel', {})
    banner = item.get('brandingSettings', {}).get('image', {})
    content_details = item.get('contentDetails', {})
    topics = item.get('topicDetails', {})
    status = item.get('status', {})
    thumbnails = snippet.get('thumbnails', {})

    flat = {
        'title': snippet.get('title'),
        'description': snippet.get('description'),
        'customUrl': snippet.get('customUrl'),
        'publishedAt': snippet.get('publishedAt'),
        'country': snippet.get('country'),
        'defaultLanguage': snippet.get('defaultLanguage'),
        'thumbnailUrl': (
            thumbnails.get('high', {}).get('url')
            or thumbnails.get('medium', {}).get('url')
            or thumbnails.get('default', {}).get('url')
        ),
        'thumbnailDefault': thumbnails.get('default', {}).get('url'),
        'thumbnailMedium': thumbnails.get('medium', {}).get('url'),
        'thumbnailHigh': thumbnails.get('high', {}).get('url'),
        'keywords': branding.get('keywords'),
        'bannerExternalUrl': banner.get('bannerExternalUrl'),
        'unsubscribedTrailer': branding.get('unsubscribedTrailer'),
        'uploadsPlaylistId': content_details.get('relatedPlaylists', {}).get('uploads'),
        'topicIds': topics.get('topicIds'),
        'topicCategories': topics.get('topicCategories'),
        'privacyStatus': status.get('privacyStatus'),
        'isLinked': status.get('isLinked'),
        'longUploadsStatus': status.get('longUploadsStatus'),
        'madeForKids': status.get('madeForKids'),
        'selfDeclaredMadeForKids': status.get('selfDeclaredMadeForKids'),
        'subscriberCount': statistics.get('subscriberCount'),
        'viewCount': statistics.get('viewCount'),
        'videoCount': statistics.get('videoCount'),
        'hiddenSubscriberCount': statistics.get('hiddenSubscriberCount'),
    }
    return {k: v for k, v in flat.items() if v is not None}
