"""
Sorting Logic

Sort options for channel discovery and the ordering applied to each
page of candidates before they are accumulated.
"""

from typing import Dict, List


class SortOption:
    """Sort options for channel discovery."""
    VIEW_COUNT = "viewCount"
    VIDEO_COUNT_ASC = "videoCount_asc"


SORT_OPTIONS = {
    "Most viewed": SortOption.VIEW_COUNT,
    "Fewest videos": SortOption.VIDEO_COUNT_ASC,
}

# search.list order parameter used for each option
SEARCH_ORDER = {
    SortOption.VIEW_COUNT: "viewCount",
    SortOption.VIDEO_COUNT_ASC: "relevance",
}


def search_order_for(sort_by: str) -> str:
    """
    Map a sort option to the API search order.

    Raises:
        ValueError: If sort_by is not a SortOption value
    """
    if sort_by not in SEARCH_ORDER:
        raise ValueError(f"Unsupported sort key: {sort_by}")
    return SEARCH_ORDER[sort_by]


def sort_candidates(channel_ids: List[str], stats: Dict[str, Dict], sort_by: str) -> List[str]:
    """
    Order one page of candidates by the chosen criteria.

    Args:
        channel_ids: Candidate channel IDs (already filtered)
        stats: Dict mapping channel_id to stats
        sort_by: One of SortOption values

    Returns:
        New list of channel IDs; ties keep their search order
    """
    if sort_by == SortOption.VIEW_COUNT:
        return sorted(channel_ids, key=lambda c: stats.get(c, {}).get('viewCount', 0), reverse=True)
    if sort_by == SortOption.VIDEO_COUNT_ASC:
        return sorted(channel_ids, key=lambda c: stats.get(c, {}).get('videoCount', 0))
    return list(channel_ids)
