"""
EPG Refresh Service

Coordinates downloading, parsing and merging of guide data from multiple sources,
then hands the merged table to the ScheduleStore.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Literal, Sequence

from streamguide.config import settings
from streamguide.services.epg_downloader_service import DocumentFetcher, fetch_and_parse_epg
from streamguide.services.fetch_coordinator import ScheduleStore, get_schedule_store
from streamguide.services.fetch_types import EMPTY_SCHEDULE, ScheduleTable, count_programs
from streamguide.services.schedule_cache import save_schedule
from streamguide.utils.data_merging import merge_schedules
from streamguide.utils.file_operations import fetch_document


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceSummary:
    index: int
    source_url: str
    sanitized_url: str
    started_at: datetime
    completed_at: datetime
    status: Literal["success", "failed"]
    channels_parsed: int = 0
    programs_parsed: int = 0
    schedule: ScheduleTable = field(default_factory=lambda: EMPTY_SCHEDULE, repr=False)

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        return {
            "source_index": self.index,
            "sanitized_url": self.sanitized_url,
            "status": self.status,
            "channels_parsed": self.channels_parsed,
            "programs_parsed": self.programs_parsed,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }


class EPGRefreshPipeline:
    """Coordinates download, parse and merge stages for a refresh cycle."""

    def __init__(
        self,
        sources: Sequence[str],
        *,
        max_concurrency: int | None = None,
        fetcher: DocumentFetcher | None = None,
        parse_timeout: int | None = None,
        chunk_size: int | None = None
    ) -> None:
        self.sources = [source for source in sources if source]
        self.total_sources = len(self.sources)
        self._concurrency = max(1, max_concurrency or min(settings.max_concurrent_sources, self.total_sources or 1))
        self._semaphore = asyncio.Semaphore(self._concurrency)
        self._fetcher = fetcher or _configured_fetcher
        self._parse_timeout = settings.epg_parse_timeout_sec if parse_timeout is None else parse_timeout
        self._chunk_size = chunk_size or settings.epg_parse_chunk_size
        self._source_progress: list[float] = [0.0] * self.total_sources
        self._on_progress: Callable[[float], None] | None = None

    async def run(self, on_progress: Callable[[float], None] | None = None) -> tuple[ScheduleTable | None, dict]:
        """
        Refresh every source and merge the results

        Returns:
            Tuple of (merged table or None when every source failed, result dict)
        """
        started_at = datetime.now(timezone.utc)
        self._on_progress = on_progress
        logger.info(
            "XML parsing timeout per source: %s",
            f"{self._parse_timeout}s" if self._parse_timeout else "disabled",
        )

        summaries = await self._collect_sources()
        succeeded = [summary for summary in summaries if summary.status == "success"]

        merged: ScheduleTable | None = None
        duplicates = 0
        if succeeded:
            merged, duplicates = merge_schedules(summary.schedule for summary in succeeded)
            logger.info(
                "Merged %s/%s sources: %s channels, %s programs, %s duplicates dropped",
                len(succeeded),
                len(summaries),
                len(merged),
                count_programs(merged),
                duplicates,
            )
        else:
            logger.warning("No EPG source produced any programs")

        return merged, self._build_result(started_at, summaries, merged, duplicates)

    def _report(self, index: int, value: float) -> None:
        self._source_progress[index - 1] = value
        if self._on_progress is not None and self.total_sources:
            self._on_progress(sum(self._source_progress) / self.total_sources)

    async def _collect_sources(self) -> list[SourceSummary]:
        if not self.sources:
            logger.warning("No EPG sources configured - skipping refresh cycle")
            return []

        tasks = [
            asyncio.create_task(self._process_source(index, source_url))
            for index, source_url in enumerate(self.sources, start=1)
        ]

        summaries = await asyncio.gather(*tasks)
        summaries.sort(key=lambda summary: summary.index)
        return summaries

    async def _process_source(self, index: int, source_url: str) -> SourceSummary:
        sanitized_url = _sanitize_url_for_logging(source_url)
        started_at = datetime.now(timezone.utc)

        async with self._semaphore:
            logger.info("[Source %s/%s] Fetching %s", index, self.total_sources, sanitized_url)
            schedule = await fetch_and_parse_epg(
                source_url,
                lambda value: self._report(index, value),
                fetcher=self._fetcher,
                parse_timeout_seconds=self._parse_timeout,
                chunk_size=self._chunk_size,
            )

        completed_at = datetime.now(timezone.utc)
        programs = count_programs(schedule)
        status: Literal["success", "failed"] = "success" if programs else "failed"

        if status == "success":
            logger.info(
                "[Source %s/%s] Completed: %s (%s channels, %s programs)",
                index,
                self.total_sources,
                sanitized_url,
                len(schedule),
                programs,
            )
        else:
            logger.error("[Source %s/%s] No programs from %s", index, self.total_sources, sanitized_url)

        return SourceSummary(
            index=index,
            source_url=source_url,
            sanitized_url=sanitized_url,
            started_at=started_at,
            completed_at=completed_at,
            status=status,
            channels_parsed=len(schedule),
            programs_parsed=programs,
            schedule=schedule,
        )

    def _build_result(
        self,
        started_at: datetime,
        summaries: list[SourceSummary],
        merged: ScheduleTable | None,
        duplicates: int,
    ) -> dict:
        successes = sum(1 for summary in summaries if summary.status == "success")
        failures = sum(1 for summary in summaries if summary.status == "failed")

        return {
            "status": "success" if merged is not None else "failed",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "started_at": started_at.isoformat(),
            "sources_processed": len(self.sources),
            "sources_succeeded": successes,
            "sources_failed": failures,
            "channels": len(merged) if merged is not None else 0,
            "programs": count_programs(merged) if merged is not None else 0,
            "duplicates_dropped": duplicates,
            "source_details": [summary.to_dict() for summary in summaries],
        }


async def _configured_fetcher(url: str):
    return await fetch_document(
        url,
        timeout=settings.epg_fetch_timeout_sec,
        max_retries=settings.epg_fetch_max_retries,
        backoff_factor=settings.epg_fetch_backoff_factor,
    )


def _sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        if "password=" in rest:
            base, _, query = rest.partition("?")
            params = [
                "password=***" if param.startswith("password=") else param
                for param in query.split("&")
            ]
            return f"{protocol}://{base}?{'&'.join(params)}"
        return url
    except (ValueError, IndexError):
        return url


async def persist_applied_schedule(store: ScheduleStore, generation: int, path: str) -> bool:
    """
    Write the store's table to the disk cache if refresh #generation is still the applied one.

    Saves run one at a time, so a run that was overtaken while waiting for the
    lock skips its write instead of overwriting a newer snapshot.

    Returns:
        True if the cache was written
    """
    async with store.save_lock:
        if store.applied_generation != generation:
            logger.info(
                "Skipping cache write for refresh #%s: refresh #%s is applied",
                generation,
                store.applied_generation,
            )
            return False
        return await save_schedule(store.schedule, path)


async def refresh_epg(
    sources: Sequence[str] | None = None,
    *,
    store: ScheduleStore | None = None,
    fetcher: DocumentFetcher | None = None
) -> dict:
    """
    Main entry point for refreshing the schedule.

    Concurrent calls are allowed: the most recently started refresh wins and
    results of older ones are discarded by the store.

    Returns:
        Dictionary with refresh statistics, or an error message.
    """
    sources = list(settings.epg_sources or []) if sources is None else list(sources)
    store = store or get_schedule_store()

    logger.info("EPG refresh requested for %s sources", len(sources))

    if not sources:
        logger.warning("EPG_SOURCES not configured - refresh aborted")
        return {"error": "EPG_SOURCES not configured"}

    pipeline = EPGRefreshPipeline(sources, fetcher=fetcher)
    try:
        outcome = await store.refresh(pipeline.run)
    except Exception as exc:  # Catch-all to ensure API stability
        logger.error("Unexpected error during EPG refresh: %s", exc, exc_info=True)
        return {"error": str(exc)}

    result = dict(outcome.result)
    result["generation"] = outcome.generation

    if outcome.applied:
        if settings.epg_cache_enabled:
            await persist_applied_schedule(store, outcome.generation, settings.epg_cache_path)
    elif result["status"] == "success":
        result["status"] = "superseded"

    logger.info("EPG refresh #%s finished with status %s", outcome.generation, result["status"])
    return result
