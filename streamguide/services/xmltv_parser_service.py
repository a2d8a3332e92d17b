"""
Streaming XMLTV parser

Event-driven (SAX-style) parse of an XMLTV document into a ScheduleTable.
The document is fed to lxml in chunks so no element tree is ever built.
"""
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
import logging

from lxml import etree # type: ignore

from streamguide.services.fetch_types import Program, ScheduleTable, freeze_schedule
from streamguide.utils.timezone import parse_xmltv_time

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

MAX_PARTIAL_PROGRESS = 0.99
DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(slots=True)
class ProgrammeState:
    """Mutable state of the <programme> element currently being read."""
    current_element: str = ""
    in_programme: bool = False
    channel_key: str = ""
    title_buffer: list[str] = field(default_factory=list)
    title_done: bool = False
    desc_buffer: list[str] = field(default_factory=list)
    start: datetime | None = None
    stop: datetime | None = None

    def reset(self, channel_key: str, start: datetime | None, stop: datetime | None) -> None:
        self.in_programme = True
        self.channel_key = channel_key
        self.title_buffer.clear()
        self.title_done = False
        self.desc_buffer.clear()
        self.start = start
        self.stop = stop

    @property
    def title(self) -> str:
        return "".join(self.title_buffer).strip()

    @property
    def description(self) -> str | None:
        text = "".join(self.desc_buffer).strip()
        return text or None


def _local_name(tag) -> str:
    """Strip a '{namespace}' prefix"""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit('}', 1)[-1]


class XMLTVScheduleParser:
    """
    lxml parser target accumulating programmes per channel key

    lxml calls start/data/end while bytes are fed and close() once the
    document is complete; close() returns the finished ScheduleTable.
    """

    def __init__(self, on_progress: ProgressCallback | None = None, total_bytes: int | None = None):
        self._on_progress = on_progress
        self._total_bytes = total_bytes or 0
        self._bytes_fed = 0
        self._last_progress = 0.0
        self._state = ProgrammeState()
        self._programs: dict[str, list[Program]] = {}
        self.skipped = 0

    # Progress

    def advance(self, byte_count: int) -> None:
        """Record bytes handed to the underlying parser"""
        self._bytes_fed += byte_count

    def _report_progress(self) -> None:
        if self._on_progress is None or self._total_bytes <= 0:
            return
        progress = min(self._bytes_fed / self._total_bytes, MAX_PARTIAL_PROGRESS)
        if progress > self._last_progress:
            self._last_progress = progress
            self._on_progress(progress)

    # Parser target interface

    def start(self, tag, attrib) -> None:
        name = _local_name(tag)
        self._state.current_element = name

        if name == "programme":
            self._state.reset(
                channel_key=(attrib.get("channel") or "").strip(),
                start=parse_xmltv_time(attrib.get("start")),
                stop=parse_xmltv_time(attrib.get("stop")),
            )

    def data(self, text: str) -> None:
        state = self._state
        if state.in_programme:
            if state.current_element == "title" and not state.title_done:
                state.title_buffer.append(text)
            elif state.current_element == "desc":
                state.desc_buffer.append(text)

        self._report_progress()

    def end(self, tag) -> None:
        name = _local_name(tag)
        state = self._state

        if name == "title" and state.in_programme:
            # Only the first non-empty title counts; later ones are translations
            if state.title:
                state.title_done = True
        elif name == "programme":
            self._finish_programme()

        state.current_element = ""

    def close(self) -> ScheduleTable:
        # lxml also calls close() before raising on a malformed document,
        # so completion is reported by the caller, not here
        logger.debug(
            "XMLTV parse finished: %s channels, %s programmes kept, %s skipped",
            len(self._programs),
            sum(len(items) for items in self._programs.values()),
            self.skipped,
        )
        return freeze_schedule(self._programs)

    def _finish_programme(self) -> None:
        state = self._state
        state.in_programme = False
        title = state.title

        if not state.channel_key or not title or state.start is None or state.stop is None:
            self.skipped += 1
            logger.debug(
                "Skipping programme (channel=%r, title=%r, start=%s, stop=%s)",
                state.channel_key,
                title,
                state.start,
                state.stop,
            )
            return

        self._programs.setdefault(state.channel_key, []).append(
            Program(
                channel_key=state.channel_key,
                title=title,
                start=state.start,
                stop=state.stop,
                description=state.description,
            )
        )


def parse_xmltv_bytes(
    data: bytes,
    on_progress: ProgressCallback | None = None,
    total_bytes: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> ScheduleTable:
    """
    Parse an XMLTV document held in memory

    Args:
        data: Raw document bytes
        on_progress: Called with fractions in [0, 0.99] while parsing, then 1.0
        total_bytes: Expected document size (defaults to len(data))
        chunk_size: Number of bytes fed to lxml per step

    Returns:
        Immutable mapping of channel key to programmes in document order

    Raises:
        etree.XMLSyntaxError: If the document is malformed
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")

    target = XMLTVScheduleParser(on_progress=on_progress, total_bytes=total_bytes or len(data))
    parser = etree.XMLParser(target=target, resolve_entities=False, no_network=True, huge_tree=True)

    logger.debug("Parsing XMLTV document (%.2f MB)", len(data) / 1024 / 1024)

    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        chunk = view[offset:offset + chunk_size]
        target.advance(len(chunk))
        parser.feed(bytes(chunk))

    schedule = parser.close()
    if on_progress is not None:
        on_progress(1.0)

    logger.info(
        "XMLTV parsing complete: %s channels, %s programmes (%s skipped)",
        len(schedule),
        sum(len(items) for items in schedule.values()),
        target.skipped,
    )
    return schedule
