"""
Services package for StreamGuide

Guide ingestion, schedule ownership, stream matching and scoreboard lookups.
Modules that read settings are imported directly rather than re-exported here.
"""
from streamguide.services.fetch_types import Channel, Fixture, Program, ScheduleTable
from streamguide.services.smart_search import calculate_stream_score, is_banner, tokenize
from streamguide.services.xmltv_parser_service import parse_xmltv_bytes

__all__ = [
    'Channel',
    'Fixture',
    'Program',
    'ScheduleTable',
    'calculate_stream_score',
    'is_banner',
    'tokenize',
    'parse_xmltv_bytes',
]
