"""
Data merging utilities

This module handles merging of schedule tables from multiple guide sources.
"""
import logging
from collections.abc import Iterable

from streamguide.services.fetch_types import Program, ScheduleTable, freeze_schedule

logger = logging.getLogger(__name__)


def merge_schedules(tables: Iterable[ScheduleTable]) -> tuple[ScheduleTable, int]:
    """
    Merge schedule tables in priority order into a new snapshot.

    Channel keys seen for the first time are added with all their programs.
    For keys already present, programs from later tables are appended unless
    an earlier table already holds the same channel/start/title.

    Args:
        tables: Schedule tables, highest priority first

    Returns:
        Tuple of (merged_table, count_of_duplicates_dropped)
    """
    merged: dict[str, list[Program]] = {}
    seen_keys: set[str] = set()
    duplicates = 0

    for table in tables:
        for channel_key, programs in table.items():
            bucket = merged.setdefault(channel_key, [])
            for program in programs:
                program_key = create_program_key(program)
                if program_key in seen_keys:
                    duplicates += 1
                    logger.debug(
                        "Skipping duplicate program: %s on %s",
                        program.title,
                        program.channel_key,
                    )
                    continue
                seen_keys.add(program_key)
                bucket.append(program)

    return freeze_schedule(merged), duplicates


def create_program_key(program: Program) -> str:
    """
    Create a unique key for a program based on channel, time, and title.

    Args:
        program: Program instance

    Returns:
        Unique program key string
    """
    return f"{program.channel_key}_{program.start.isoformat()}_{program.title}"
