"""
Data Models

Plain dataclasses shared across the pipeline. Channel profiles and
snapshots stay as dicts keyed by API field name; only values with
invariants or a fixed shape get a class.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import PersistenceError


@dataclass(frozen=True)
class ClassificationResult:
    """Short-form / long-form split over a channel's analyzed uploads."""
    shortform_count: int
    total_analyzed: int
    shortform_view_total: int

    def __post_init__(self):
        if self.shortform_count < 0 or self.shortform_view_total < 0:
            raise ValueError("Classification counters must be non-negative")
        if self.shortform_count > self.total_analyzed:
            raise ValueError(
                f"shortform_count ({self.shortform_count}) exceeds "
                f"total_analyzed ({self.total_analyzed})"
            )


@dataclass(frozen=True)
class Document:
    """A stored document or container as returned by the object store."""
    id: str
    name: str
    mime_type: str = 'application/json'


@dataclass
class IndexEntry:
    """One row of the channel index."""
    channel_id: str
    title: str
    last_updated: str
    total_snapshots: int
    first_collected: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {
            'channelId': self.channel_id,
            'title': self.title,
            'lastUpdated': self.last_updated,
            'totalSnapshots': self.total_snapshots,
        }
        if self.first_collected:
            data['firstCollected'] = self.first_collected
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'IndexEntry':
        return cls(
            channel_id=data['channelId'],
            title=data.get('title', 'Unknown'),
            last_updated=data.get('lastUpdated', ''),
            total_snapshots=int(data.get('totalSnapshots', 0)),
            first_collected=data.get('firstCollected'),
        )


@dataclass
class ChannelIndex:
    """Denormalized directory of every channel persisted under a storage root."""
    last_updated: str
    entries: List[IndexEntry] = field(default_factory=list)

    @property
    def total_channels(self) -> int:
        return len(self.entries)

    def channel_ids(self) -> List[str]:
        return [e.channel_id for e in self.entries]

    def find(self, channel_id: str) -> Optional[IndexEntry]:
        for entry in self.entries:
            if entry.channel_id == channel_id:
                return entry
        return None

    def upsert(self, entry: IndexEntry):
        """Update an existing row in place or append a new one."""
        existing = self.find(entry.channel_id)
        if existing is None:
            self.entries.append(entry)
            return
        existing.last_updated = entry.last_updated
        existing.total_snapshots = entry.total_snapshots
        if entry.title and entry.title != 'Unknown':
            existing.title = entry.title

    def to_dict(self) -> Dict:
        return {
            'lastUpdated': self.last_updated,
            'totalChannels': self.total_channels,
            'channels': [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ChannelIndex':
        """
        Raises:
            PersistenceError: If the stored index is malformed
        """
        try:
            return cls(
                last_updated=data.get('lastUpdated', ''),
                entries=[IndexEntry.from_dict(c) for c in data.get('channels', [])],
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed channel index: {e!r}") from e


@dataclass(frozen=True)
class WorkItem:
    """A channel id and its position in the current run's worklist."""
    identifier: str
    position: int


@dataclass
class ItemResult:
    """Outcome of processing one work item."""
    channel_id: str
    position: int
    status: str  # success, warning, failed
    message: str = ''
    title: Optional[str] = None

    SUCCESS = 'success'
    WARNING = 'warning'
    FAILED = 'failed'

    @property
    def ok(self) -> bool:
        return self.status != self.FAILED
