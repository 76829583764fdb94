"""
Channel Discovery

Paginated channel search that keeps only channels under a subscriber
ceiling and not already known, until enough new channels are found or
the search results run out.
"""

import logging
from typing import AbstractSet, Callable, List, Optional

from .config import DEFAULT_SEARCH_KEYWORD
from .filters import exclude_known_channels, filter_channels_by_subscribers
from .sorting import search_order_for, sort_candidates
from .youtube_api import YouTubeService

logger = logging.getLogger(__name__)


def find_channels(
    service: YouTubeService,
    max_subscribers: int,
    sort_by: str,
    desired_count: int,
    category_id: Optional[str] = None,
    exclude_ids: AbstractSet[str] = frozenset(),
    keyword: str = DEFAULT_SEARCH_KEYWORD,
    on_progress: Optional[Callable[[str], None]] = None,
) -> List[str]:
    """
    Discover up to desired_count new channel IDs.

    The call is atomic: if any page fails the DiscoveryError propagates
    and nothing accumulated so far is returned.

    Args:
        service: YouTubeService instance
        max_subscribers: Inclusive subscriber ceiling
        sort_by: SortOption value, decides candidate order within a page
        desired_count: Maximum number of IDs to return
        category_id: Optional video category filter
        exclude_ids: Channel IDs that must not be returned
        keyword: Search keyword
        on_progress: Callback for progress updates (optional)

    Returns:
        List of new channel IDs, possibly shorter than desired_count

    Raises:
        DiscoveryError: When a search or statistics call fails
        ValueError: If sort_by is unknown
    """
    def progress(msg: str):
        if on_progress:
            on_progress(msg)

    order = search_order_for(sort_by)
    if desired_count <= 0:
        return []

    found: List[str] = []
    next_page_token = None
    page = 0

    while len(found) < desired_count:
        page += 1
        progress(f"Searching page {page}...")
        page_ids, next_page_token = service.search_channel_page(
            keyword,
            order=order,
            category_id=category_id,
            page_token=next_page_token,
        )

        candidates = exclude_known_channels(page_ids, set(exclude_ids) | set(found))
        if candidates:
            stats = service.get_channel_statistics(candidates)
            survivors = filter_channels_by_subscribers(candidates, stats, max_subscribers)
            for channel_id in sort_candidates(survivors, stats, sort_by):
                if len(found) >= desired_count:
                    break
                found.append(channel_id)

        logger.info(
            f"Search page {page}: {len(page_ids)} candidates, "
            f"{len(found)}/{desired_count} channels collected"
        )

        if not next_page_token:
            break

    progress(f"Found {len(found)} new channels")
    return found
