"""
Collection Pipeline

Builds a run's worklist and performs the per-channel cycle:
fetch profile and counters, classify uploads when needed, derive
metrics, persist the snapshot.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .classifier import classify_uploads
from .config import DEFAULT_SEARCH_KEYWORD
from .errors import ClassificationError, PersistenceError
from .fields import needs_classification, resolve_fetch_fields
from .finder import find_channels
from .metrics import to_int, derive_metrics
from .models import IndexEntry, ItemResult
from .repository import ChannelRepository
from .youtube_api import YouTubeService

logger = logging.getLogger(__name__)


class UpdateMode:
    """Where a run's channels come from."""
    NEW = "new"  # discover channels not yet in the index
    EXISTING = "existing"  # re-measure every indexed channel

    ALL = (NEW, EXISTING)


def _dedupe(channel_ids: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for channel_id in channel_ids:
        if channel_id not in seen:
            seen.add(channel_id)
            unique.append(channel_id)
    return unique


def build_worklist(
    service: YouTubeService,
    repository: ChannelRepository,
    mode: str,
    max_subscribers: int,
    sort_by: str,
    desired_count: int,
    category_id: Optional[str] = None,
    keyword: str = DEFAULT_SEARCH_KEYWORD,
    handles: Sequence[str] = (),
    on_progress: Optional[Callable[[str], None]] = None,
) -> List[str]:
    """
    Assemble the ordered channel IDs for one run.

    Channels given by handle come first. In NEW mode the rest is
    discovered, excluding every indexed channel; in EXISTING mode it is
    the index itself.

    Raises:
        DiscoveryError: If a handle cannot be resolved or the search fails
        PersistenceError: If the index cannot be read
        ValueError: If mode is unknown
    """
    if mode not in UpdateMode.ALL:
        raise ValueError(f"Unknown update mode: {mode}")

    manual = [service.resolve_handle(h) for h in handles]
    known = repository.existing_channel_ids()

    if mode == UpdateMode.EXISTING:
        logger.info(f"Re-measuring {len(known)} indexed channels")
        return _dedupe(manual + known)

    discovered = find_channels(
        service,
        max_subscribers=max_subscribers,
        sort_by=sort_by,
        desired_count=desired_count,
        category_id=category_id,
        exclude_ids=set(known) | set(manual),
        keyword=keyword,
        on_progress=on_progress,
    )
    return _dedupe(manual + discovered)


class ChannelCollector:
    """Runs the fetch, classify, derive and persist cycle for one channel at a time."""

    def __init__(
        self,
        service: YouTubeService,
        repository: ChannelRepository,
        static_fields: Iterable[str],
        derived_fields: Iterable[str],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.service = service
        self.repository = repository
        self.static_fields = sorted(static_fields)
        self.derived_fields = sorted(derived_fields)
        # Resolved once per run
        self.fetch_fields = resolve_fetch_fields(self.static_fields, self.derived_fields)
        self.classify = needs_classification(self.derived_fields)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def collect(self, channel_id: str) -> IndexEntry:
        """
        Measure one channel and persist the snapshot.

        A classification failure only drops the content metrics.

        Returns:
            The channel's index entry

        Raises:
            DiscoveryError: If the channel cannot be fetched
            PersistenceError: If the channel document cannot be written
            IndexConsistencyWarning: If the document was written but the index was not
        """
        profile, counters = self.service.fetch_channel(channel_id, self.fetch_fields)

        snapshot: Dict = {}
        for name, value in counters.items():
            snapshot[name] = bool(value) if name == 'hiddenSubscriberCount' else to_int(value)

        classification = None
        uploads_playlist = profile.get('uploadsPlaylistId')
        if self.classify and uploads_playlist:
            try:
                classification = classify_uploads(self.service, uploads_playlist)
            except ClassificationError as e:
                logger.warning(f"Content analysis skipped for {channel_id}: {e}")

        metrics = derive_metrics(
            snapshot,
            published_at=profile.get('publishedAt'),
            classification=classification,
            requested_fields=self.derived_fields,
            now=self._clock(),
        )

        entry = self.repository.save_snapshot(channel_id, profile, {**snapshot, **metrics})
        logger.info(f"Saved snapshot for {entry.title} ({channel_id})")
        return entry

    def write_manifest(
        self,
        worklist: Sequence[str],
        results: Sequence[ItemResult],
        update_mode: str,
        filters: Optional[Dict] = None,
    ) -> Optional[str]:
        """
        Record what a run processed. Failures are logged, never raised.

        Returns:
            Manifest document name, or None if it could not be written
        """
        by_position = {r.position: r for r in results}
        channels = []
        for position, channel_id in enumerate(worklist):
            result = by_position.get(position)
            channels.append({
                'channelId': channel_id,
                'title': (result.title if result else None) or 'Unknown',
                'processed': bool(result and result.ok),
            })

        collection_info = {
            'filters': filters or {},
            'selectedFields': {
                'static': self.static_fields,
                'derived': self.derived_fields,
            },
            'updateMode': update_mode,
        }

        try:
            return self.repository.write_manifest(collection_info, channels)
        except PersistenceError as e:
            logger.warning(f"Collection manifest not written: {e}")
            return None
