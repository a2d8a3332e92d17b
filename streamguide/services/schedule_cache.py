"""
Schedule Cache

Persists the last successfully applied ScheduleTable as JSON so a restart can
serve program titles before the first refresh finishes.
"""
from pathlib import Path
import logging

import aiofiles
from pydantic import TypeAdapter, ValidationError

from streamguide.schemas import CachedProgram
from streamguide.services.fetch_types import ScheduleTable, count_programs, freeze_schedule


logger = logging.getLogger(__name__)

_cache_adapter = TypeAdapter(dict[str, list[CachedProgram]])


async def save_schedule(schedule: ScheduleTable, path: Path | str) -> bool:
    """
    Write a schedule snapshot to disk

    The file is written next to its destination and renamed into place, so a
    crash never leaves a truncated cache behind.

    Args:
        schedule: Table to persist
        path: Cache file path

    Returns:
        True if written, False on I/O failure
    """
    path = Path(path)
    payload = {
        channel_key: [CachedProgram.from_program(program) for program in programs]
        for channel_key, programs in schedule.items()
    }
    data = _cache_adapter.dump_json(payload)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(data)
        temp_path.replace(path)
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to save schedule cache to {path}: {e}")
        return False

    logger.info(f"Saved schedule cache: {len(schedule)} channels, {count_programs(schedule)} programs ({len(data) / 1024:.1f} KB)")
    return True


async def load_schedule(path: Path | str) -> ScheduleTable | None:
    """
    Read a schedule snapshot from disk

    Args:
        path: Cache file path

    Returns:
        The cached table, or None if the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No schedule cache at {path}")
        return None

    try:
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
        payload = _cache_adapter.validate_json(data)
    except (OSError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable schedule cache {path}: {e}")
        return None

    schedule = freeze_schedule({
        channel_key: [cached.to_program(channel_key) for cached in programs]
        for channel_key, programs in payload.items()
    })
    logger.info(f"Loaded schedule cache: {len(schedule)} channels, {count_programs(schedule)} programs")
    return schedule
