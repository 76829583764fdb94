"""
Channel Repository

Owns the per-channel documents, the channel index and the per-run
collection manifests inside one storage root:

    <root>/_channel_index.json
    <root>/channels/<channelId>.json
    <root>/collections/<timestamp>.json

The index is a secondary structure; it is updated after the channel
document and may lag behind it if that second write fails.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .config import (
    CHANNELS_FOLDER,
    COLLECTIONS_FOLDER,
    HISTORY_MAX_MONTHS,
    INDEX_FILE_NAME,
    RETENTION_APPEND_ALL,
    RETENTION_LATEST_WITH_HISTORY,
)
from .errors import IndexConsistencyWarning, PersistenceError
from .models import ChannelIndex, IndexEntry
from .storage import DocumentStore

logger = logging.getLogger(__name__)


class RetentionPolicy:
    """How snapshots accumulate in a channel document."""
    APPEND_ALL = RETENTION_APPEND_ALL
    LATEST_WITH_HISTORY = RETENTION_LATEST_WITH_HISTORY

    ALL = (APPEND_ALL, LATEST_WITH_HISTORY)


def isoformat_z(moment: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_retention(
    document: Dict,
    snapshot: Dict,
    policy: str,
    history_months: int = HISTORY_MAX_MONTHS,
) -> Dict:
    """
    Add a snapshot to a channel document according to the retention policy.

    Args:
        document: Existing channel document (modified in place)
        snapshot: New timestamped snapshot
        policy: RetentionPolicy value
        history_months: Months of subscriber history to keep (latest-only mode)

    Returns:
        The updated document
    """
    if policy == RetentionPolicy.APPEND_ALL:
        document.setdefault('snapshots', []).append(snapshot)
        return document

    document['snapshots'] = [snapshot]

    subscribers = snapshot.get('subscriberCount')
    if subscribers is not None:
        history = dict(document.get('subscriberHistory') or {})
        history[snapshot['timestamp'][:7]] = subscribers
        kept = sorted(history)[-history_months:]
        document['subscriberHistory'] = {month: history[month] for month in kept}

    return document


class ChannelRepository:
    """Reads and writes channel documents and the channel index."""

    def __init__(
        self,
        store: DocumentStore,
        root_id: str = 'root',
        retention_policy: str = RetentionPolicy.APPEND_ALL,
        history_months: int = HISTORY_MAX_MONTHS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if retention_policy not in RetentionPolicy.ALL:
            raise ValueError(f"Unknown retention policy: {retention_policy}")

        self.store = store
        self.root_id = root_id
        self.retention_policy = retention_policy
        self.history_months = history_months
        self._clock = clock or _utcnow
        self._channels_folder_id: Optional[str] = None

    def _now(self) -> str:
        return isoformat_z(self._clock())

    def _channels_folder(self) -> str:
        if self._channels_folder_id is None:
            self._channels_folder_id = self.store.get_or_create_container(CHANNELS_FOLDER, self.root_id).id
        return self._channels_folder_id

    # ------------------------------------------------------------------
    # INDEX
    # ------------------------------------------------------------------

    def load_index(self) -> ChannelIndex:
        """
        Load the channel index, creating an empty one on first access.

        Raises:
            PersistenceError: If the index cannot be read or created
        """
        existing = self.store.find_document(INDEX_FILE_NAME, self.root_id)
        if existing is not None:
            return ChannelIndex.from_dict(self.store.read_json(existing.id))

        index = ChannelIndex(last_updated=self._now())
        self.store.create_document(INDEX_FILE_NAME, self.root_id, index.to_dict())
        logger.info("Created empty channel index")
        return index

    def existing_channel_ids(self) -> List[str]:
        """IDs of every channel recorded in the index."""
        return self.load_index().channel_ids()

    def update_index(self, entry: IndexEntry):
        """
        Add or refresh one channel's row in the index.

        Raises:
            PersistenceError: If the index cannot be read or written
        """
        existing = self.store.find_document(INDEX_FILE_NAME, self.root_id)
        if existing is None:
            index = ChannelIndex(last_updated=self._now())
        else:
            index = ChannelIndex.from_dict(self.store.read_json(existing.id))

        index.upsert(entry)
        index.last_updated = self._now()

        if existing is None:
            self.store.create_document(INDEX_FILE_NAME, self.root_id, index.to_dict())
        else:
            self.store.update_document(existing.id, index.to_dict())

    # ------------------------------------------------------------------
    # CHANNEL DOCUMENTS
    # ------------------------------------------------------------------

    def load_channel(self, channel_id: str) -> Optional[Dict]:
        """Return a channel's stored document, or None if it was never collected."""
        existing = self.store.find_document(f"{channel_id}.json", self._channels_folder())
        if existing is None:
            return None
        return self.store.read_json(existing.id)

    def save_snapshot(self, channel_id: str, static_profile: Dict, snapshot: Dict) -> IndexEntry:
        """
        Create or update a channel document with a new snapshot, then
        record it in the index.

        The static profile is overwritten; the snapshot is added according
        to the retention policy.

        Args:
            channel_id: Channel ID
            static_profile: Latest slow-changing attributes
            snapshot: Primary counters merged with derived metrics

        Returns:
            The index entry written for the channel

        Raises:
            PersistenceError: If the channel document cannot be written
            IndexConsistencyWarning: If the document was written but the index was not
        """
        now = self._now()
        new_snapshot = {'timestamp': now, **snapshot}
        file_name = f"{channel_id}.json"
        folder_id = self._channels_folder()

        existing = self.store.find_document(file_name, folder_id)

        if existing is not None:
            document = self.store.read_json(existing.id)
            document['staticProfile'] = static_profile
            apply_retention(document, new_snapshot, self.retention_policy, self.history_months)

            previous = document.get('metadata') or {}
            total = int(previous.get('totalCollections', 0)) + 1
            if self.retention_policy == RetentionPolicy.APPEND_ALL:
                total = len(document['snapshots'])
            document['metadata'] = {
                'firstCollected': previous.get('firstCollected') or now,
                'lastUpdated': now,
                'totalCollections': total,
            }
            self.store.update_document(existing.id, document)
        else:
            document = {'channelId': channel_id, 'staticProfile': static_profile, 'snapshots': []}
            apply_retention(document, new_snapshot, self.retention_policy, self.history_months)
            document['metadata'] = {
                'firstCollected': now,
                'lastUpdated': now,
                'totalCollections': 1,
            }
            self.store.create_document(file_name, folder_id, document)

        entry = IndexEntry(
            channel_id=channel_id,
            title=static_profile.get('title') or 'Unknown',
            last_updated=now,
            total_snapshots=document['metadata']['totalCollections'],
            first_collected=now if existing is None else None,
        )

        try:
            self.update_index(entry)
        except PersistenceError as e:
            raise IndexConsistencyWarning(f"Index update failed for {channel_id}: {e}", entry=entry) from e

        return entry

    # ------------------------------------------------------------------
    # COLLECTION MANIFESTS
    # ------------------------------------------------------------------

    def write_manifest(self, collection_info: Dict, channels: List[Dict]) -> str:
        """
        Write a run manifest into the collections folder.

        Args:
            collection_info: Filters, selected fields and mode of the run
            channels: One {channelId, title, processed} row per worklist item

        Returns:
            Name of the manifest document

        Raises:
            PersistenceError: If the manifest cannot be written
        """
        moment = self._clock()
        stamp = isoformat_z(moment)
        file_stamp = stamp[:19].replace(':', '-')
        folder_id = self.store.get_or_create_container(COLLECTIONS_FOLDER, self.root_id).id

        content = {
            'collectionInfo': {
                'exportId': f"export-{file_stamp}",
                **collection_info,
                'timestamp': stamp,
                'totalChannels': len(channels),
            },
            'channels': channels,
        }
        name = f"{file_stamp}.json"
        self.store.create_document(name, folder_id, content)
        logger.info(f"Collection manifest written: {COLLECTIONS_FOLDER}/{name}")
        return name
