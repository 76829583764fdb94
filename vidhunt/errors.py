"""Exception types raised by the discovery and collection pipeline."""

from typing import Optional


class VidHuntError(Exception):
    """Base class for all pipeline errors."""
    pass


class DiscoveryError(VidHuntError):
    """Search or catalog lookup failed (quota, auth, bad request)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ClassificationError(VidHuntError):
    """Upload history could not be analyzed for a channel."""
    pass


class PersistenceError(VidHuntError):
    """A document read or write against the store failed."""
    pass


class IndexConsistencyWarning(VidHuntError):
    """The channel document was written but the index update failed."""

    def __init__(self, message: str, entry=None):
        super().__init__(message)
        # IndexEntry for the document that was written
        self.entry = entry
