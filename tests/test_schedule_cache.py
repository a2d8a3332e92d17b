"""
Tests for the on-disk schedule snapshot.
"""
import asyncio

from streamguide.services.schedule_cache import load_schedule, save_schedule
from streamguide.services.xmltv_parser_service import parse_xmltv_bytes


class TestScheduleCache:

    def test_round_trip(self, tmp_path, sample_xmltv):
        schedule = parse_xmltv_bytes(sample_xmltv)
        path = tmp_path / "cache" / "epg.json"

        assert asyncio.run(save_schedule(schedule, path)) is True
        loaded = asyncio.run(load_schedule(path))

        assert dict(loaded) == dict(schedule)
        assert not (tmp_path / "cache" / "epg.json.tmp").exists()

    def test_missing_file(self, tmp_path):
        assert asyncio.run(load_schedule(tmp_path / "absent.json")) is None

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "epg.json"
        path.write_text("{not json")
        assert asyncio.run(load_schedule(path)) is None

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "epg.json"
        path.write_text('{"c": [{"title": "", "start": "x", "stop": "y"}]}')
        assert asyncio.run(load_schedule(path)) is None

    def test_unwritable_location(self, tmp_path, sample_xmltv):
        blocker = tmp_path / "file"
        blocker.write_text("")
        schedule = parse_xmltv_bytes(sample_xmltv)

        assert asyncio.run(save_schedule(schedule, blocker / "epg.json")) is False
