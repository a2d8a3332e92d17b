"""
Shared dataclasses used across the EPG ingestion and matching pipeline.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class Program:
    """One scheduled broadcast entry parsed from a <programme> element."""
    channel_key: str
    title: str
    start: datetime
    stop: datetime
    description: str | None = None

    def is_airing(self, moment: datetime) -> bool:
        """True if moment falls inside [start, stop); inverted intervals never air."""
        if self.stop <= self.start:
            return False
        return self.start <= moment < self.stop


@dataclass(frozen=True, slots=True)
class Channel:
    """Playable channel as listed by the provider."""
    id: int
    name: str
    stream_url: str
    epg_id: str | None = None
    category_id: int | None = None


@dataclass(frozen=True, slots=True)
class Fixture:
    """A scheduled game taken from a scoreboard feed."""
    id: str
    sport: str
    home: str
    away: str
    network: str | None = None
    start: datetime | None = None
    status_detail: str | None = None
    state: str | None = None
    league_label: str | None = None


# channel_key -> programs in document order
ScheduleTable = Mapping[str, tuple[Program, ...]]

EMPTY_SCHEDULE: ScheduleTable = MappingProxyType({})


def freeze_schedule(programs: Mapping[str, list[Program] | tuple[Program, ...]]) -> ScheduleTable:
    """Build an immutable snapshot from a mutable accumulator."""
    return MappingProxyType({key: tuple(items) for key, items in programs.items()})


def count_programs(schedule: ScheduleTable) -> int:
    return sum(len(items) for items in schedule.values())


__all__ = [
    "Program",
    "Channel",
    "Fixture",
    "ScheduleTable",
    "EMPTY_SCHEDULE",
    "freeze_schedule",
    "count_programs",
]
