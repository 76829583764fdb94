"""
Filtering Functions

Functions to filter channel candidates by subscriber ceiling
and by identifiers that are already known.
"""

from typing import AbstractSet, Dict, List


def filter_channels_by_subscribers(channel_ids: List[str], stats: Dict[str, Dict], max_subscribers: int) -> List[str]:
    """
    Filter channels to only those with at most max_subscribers subscribers.

    Args:
        channel_ids: List of channel IDs
        stats: Dict mapping channel_id to stats
        max_subscribers: Maximum subscriber count threshold (inclusive)

    Returns:
        Filtered list of channel IDs that meet the criteria, input order kept
    """
    filtered = []
    for channel_id in channel_ids:
        if channel_id not in stats:
            continue

        subscriber_count = stats[channel_id]['subscriberCount']
        if subscriber_count <= max_subscribers:
            filtered.append(channel_id)

    return filtered


def exclude_known_channels(channel_ids: List[str], exclude_ids: AbstractSet[str]) -> List[str]:
    """
    Drop channel IDs that are already known, and duplicates within the list.

    Args:
        channel_ids: Candidate channel IDs
        exclude_ids: IDs to leave out

    Returns:
        Filtered list, first occurrence order kept
    """
    seen = set()
    filtered = []
    for channel_id in channel_ids:
        if channel_id in exclude_ids or channel_id in seen:
            continue
        seen.add(channel_id)
        filtered.append(channel_id)
    return filtered
