"""
EPG Downloader Service

Fetches a single XMLTV document and parses it into a ScheduleTable.
Ingestion is all-or-nothing: any failure yields an empty table and a 0.0 progress report.
"""
from collections.abc import Awaitable, Callable
import asyncio
import logging

import httpx
from lxml import etree # type: ignore

from streamguide.services.fetch_types import EMPTY_SCHEDULE, ScheduleTable, count_programs
from streamguide.services.xmltv_parser_service import (
    DEFAULT_CHUNK_SIZE,
    ProgressCallback,
    parse_xmltv_bytes,
)
from streamguide.utils.file_operations import FetchedDocument, fetch_document


logger = logging.getLogger(__name__)

DocumentFetcher = Callable[[str], Awaitable[FetchedDocument]]


class ProgressRelay:
    """
    Forwards progress from the parser thread to the event loop thread

    Once closed, values still in flight from a worker that outlived its
    caller (parse timeout) are dropped.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, on_progress: ProgressCallback):
        self._loop = loop
        self._on_progress = on_progress
        self.closed = False

    def __call__(self, value: float) -> None:
        self._loop.call_soon_threadsafe(self._deliver, value)

    def _deliver(self, value: float) -> None:
        if not self.closed:
            self._on_progress(value)

    def close(self) -> None:
        self.closed = True


async def parse_xmltv_async(
    document: FetchedDocument,
    on_progress: ProgressCallback | None = None,
    *,
    parse_timeout_seconds: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> ScheduleTable:
    """
    Parse a fetched XMLTV document without blocking the event loop.

    Parsing is offloaded to the default thread pool executor; progress values
    are delivered back on the loop thread.

    Args:
        document: Downloaded document
        on_progress: Progress callback, invoked on the event loop thread

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)
        chunk_size: Bytes fed to the parser per step

    Raises:
        etree.XMLSyntaxError: If the document is malformed
        ValueError: If parsing times out
    """
    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    loop = asyncio.get_running_loop()
    relay = ProgressRelay(loop, on_progress) if on_progress is not None else None

    logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)
    parse_task = loop.run_in_executor(
        None,
        parse_xmltv_bytes,
        document.content,
        relay,
        document.total_bytes,
        chunk_size,
    )

    try:
        if effective_timeout:
            schedule = await asyncio.wait_for(parse_task, timeout=effective_timeout)
        else:
            schedule = await parse_task
    except asyncio.TimeoutError:
        if relay is not None:
            relay.close()
        logger.error("XML parsing timed out after %s for %s", timeout_display, document.url)
        raise ValueError("XML parsing timed out - file may be too large or malformed")

    # let progress callbacks queued by the worker thread run before returning
    await asyncio.sleep(0)
    return schedule


async def fetch_and_parse_epg(
    url: str,
    on_progress: ProgressCallback | None = None,
    *,
    fetcher: DocumentFetcher | None = None,
    parse_timeout_seconds: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> ScheduleTable:
    """
    Download and parse one XMLTV guide

    Args:
        url: Guide URL
        on_progress: Receives fractions in [0, 0.99] while parsing, then 1.0;
            receives 0.0 when the guide could not be fetched or parsed

    Keyword Args:
        fetcher: Coroutine function returning a FetchedDocument (fetch_document by default)
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)
        chunk_size: Bytes fed to the parser per step

    Returns:
        Schedule table, or an empty table on any network or parse failure
    """
    fetch = fetcher or fetch_document

    try:
        document = await fetch(url)
        logger.debug("Fetched %s bytes (announced total: %s)", len(document.content), document.expected_length)

        schedule = await parse_xmltv_async(
            document,
            on_progress,
            parse_timeout_seconds=parse_timeout_seconds,
            chunk_size=chunk_size,
        )
    except (httpx.HTTPError, httpx.InvalidURL, etree.LxmlError, ValueError, OSError, RuntimeError) as exc:
        logger.error("EPG ingestion failed for %s: %s", url, exc, exc_info=True)
        if on_progress is not None:
            on_progress(0.0)
        return EMPTY_SCHEDULE

    logger.info("EPG ingestion complete for %s: %s channels, %s programs", url, len(schedule), count_programs(schedule))
    return schedule
