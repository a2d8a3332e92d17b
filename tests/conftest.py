"""
Shared fixtures for the StreamGuide test suite.
"""
from datetime import datetime, timezone

import pytest

from streamguide.config import settings
from streamguide.services.fetch_coordinator import reset_schedule_store
from streamguide.services.fetch_types import Channel, Program, freeze_schedule


SAMPLE_XMLTV = """<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="streamguide-tests">
  <channel id="espn.us"><display-name>ESPN</display-name></channel>
  <channel id="bbc.uk"><display-name>BBC One</display-name></channel>
  <programme start="20250115180000 +0000" stop="20250115200000 +0000" channel="espn.us">
    <title lang="en">Duke vs North Carolina</title>
    <title lang="es">Duke contra Carolina del Norte</title>
    <desc lang="en">ACC basketball from Cameron Indoor Stadium.</desc>
  </programme>
  <programme start="20250115200000 +0000" stop="20250115220000 +0000" channel="espn.us">
    <title>SportsCenter</title>
  </programme>
  <programme start="20250115190000 +0100" stop="20250115210000 +0100" channel="bbc.uk">
    <title>News at Six</title>
  </programme>
  <programme stop="20250115210000 +0000" channel="bbc.uk"><title>No start</title></programme>
  <programme start="20250115210000 +0000" channel="bbc.uk"><title>No stop</title></programme>
  <programme start="20250115210000 +0000" stop="20250115220000 +0000" channel="bbc.uk"><title>   </title></programme>
  <programme start="20250115210000 +0000" stop="20250115220000 +0000" channel=""><title>No channel</title></programme>
</tv>
""".encode("utf-8")


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_store(monkeypatch):
    """Every test starts with an empty global store and no disk cache."""
    reset_schedule_store()
    monkeypatch.setattr(settings, "epg_cache_enabled", False)
    yield
    reset_schedule_store()


@pytest.fixture
def sample_xmltv() -> bytes:
    return SAMPLE_XMLTV


@pytest.fixture
def game_schedule():
    """Guide with one channel airing Duke vs North Carolina at 19:00 UTC."""
    return freeze_schedule({
        "espn2.us": [
            Program("espn2.us", "College Basketball: Duke at North Carolina", utc(2025, 1, 15, 18), utc(2025, 1, 15, 20)),
        ],
        "acc.us": [
            Program("acc.us", "ACC Classics", utc(2025, 1, 15, 18), utc(2025, 1, 15, 20)),
        ],
        "espnhd.us": [
            Program("espnhd.us", "Duke vs North Carolina", utc(2025, 1, 15, 18), utc(2025, 1, 15, 20)),
        ],
    })


@pytest.fixture
def channel_list():
    return [
        Channel(id=1, name="★★★ USA SPORTS ★★★", stream_url="http://x/1"),
        Channel(id=2, name="ESPN2 (US)", stream_url="http://x/2", epg_id="espn2.us"),
        Channel(id=3, name="ACC Network FHD", stream_url="http://x/3", epg_id="acc.us"),
        Channel(id=4, name="ESPN FHD (US)", stream_url="http://x/4", epg_id="espnhd.us"),
        Channel(id=5, name="Duke Blue Devils Live", stream_url="http://x/5"),
        Channel(id=6, name="ESPN Deportes (ES)", stream_url="http://x/6"),
    ]
