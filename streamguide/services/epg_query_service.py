"""
EPG Query Service

Read-only lookups against a ScheduleTable snapshot: the program airing on a
channel right now, and guide/name search across the channel list.
"""
from collections.abc import Collection, Iterable
from datetime import datetime
import logging

from streamguide.services.fetch_types import Channel, Program, ScheduleTable
from streamguide.services.smart_search import priority_sort

logger = logging.getLogger(__name__)


def get_current_program(schedule: ScheduleTable, channel_key: str | None, now: datetime) -> Program | None:
    """
    Find the program airing on a channel at a given moment

    Args:
        schedule: Schedule snapshot
        channel_key: Channel key in the guide's namespace
        now: Moment to look up (timezone-aware)

    Returns:
        First program in document order whose [start, stop) contains now,
        or None. Programs whose stop is not after their start never match.
    """
    if not channel_key:
        return None

    for program in schedule.get(channel_key, ()):
        if program.is_airing(now):
            return program
    return None


def current_program_for_channel(schedule: ScheduleTable, channel: Channel, now: datetime) -> Program | None:
    """Current program for a playable channel, via its guide id"""
    return get_current_program(schedule, channel.epg_id, now)


def search_channels(
    channels: Iterable[Channel],
    schedule: ScheduleTable,
    query: str,
    now: datetime,
    hidden_ids: Collection[int] = ()
) -> tuple[list[Channel], list[Channel]]:
    """
    Search channels by what is airing and by name

    Every whitespace-separated query token must occur (case-insensitively) in
    the current program title for a guide match, or in the channel name for a
    name match. A channel lands in at most one list, guide matches first.

    Returns:
        Tuple of (guide_matches, name_matches), each priority-sorted
    """
    tokens = [token for token in query.lower().split() if token]
    if not tokens:
        return [], []

    guide_matches: list[Channel] = []
    name_matches: list[Channel] = []

    for channel in channels:
        if channel.id in hidden_ids:
            continue

        program = current_program_for_channel(schedule, channel, now)
        lower_title = program.title.lower() if program else ""
        lower_name = channel.name.lower()

        if lower_title and all(token in lower_title for token in tokens):
            guide_matches.append(channel)
        elif all(token in lower_name for token in tokens):
            name_matches.append(channel)

    logger.debug(
        "Search %r: %s guide matches, %s name matches",
        query,
        len(guide_matches),
        len(name_matches),
    )
    return priority_sort(guide_matches), priority_sort(name_matches)
