"""
Scoreboard Service

Fetches live scoreboards from the ESPN site API and turns events into Fixtures
that the fixture matcher can resolve to streams.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
import logging

import httpx
from pydantic import BaseModel, ValidationError

from streamguide.services.fetch_types import Fixture
from streamguide.utils.timezone import DateFormatError, parse_iso8601_to_utc


logger = logging.getLogger(__name__)

ESPN_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"


class SportType(str, Enum):
    SOCCER = "soccer"
    UCL = "ucl"
    EUROPA = "europa"
    CBB = "ncaab"
    CFB = "ncaaf"
    NFL = "nfl"
    NBA = "nba"
    WNBA = "wnba"
    NHL = "nhl"
    MLB = "mlb"
    F1 = "f1"

    @property
    def endpoint(self) -> str:
        """Scoreboard URL, empty for sports without a single feed"""
        path = _ENDPOINT_PATHS.get(self)
        return f"{ESPN_BASE_URL}/{path}/scoreboard" if path else ""

    @property
    def league_label(self) -> str | None:
        return _LEAGUE_LABELS.get(self)


_ENDPOINT_PATHS: dict[SportType, str] = {
    SportType.NFL: "football/nfl",
    SportType.MLB: "baseball/mlb",
    SportType.NHL: "hockey/nhl",
    SportType.NBA: "basketball/nba",
    SportType.WNBA: "basketball/wnba",
    SportType.CBB: "basketball/mens-college-basketball",
    SportType.CFB: "football/college-football",
    SportType.UCL: "soccer/uefa.champions",
    SportType.EUROPA: "soccer/uefa.europa",
    SportType.F1: "racing/f1",
}

_LEAGUE_LABELS: dict[SportType, str] = {
    SportType.UCL: "Champions League",
    SportType.EUROPA: "Europa League",
}


class ESPNTeam(BaseModel):
    id: str
    abbreviation: str | None = None
    displayName: str | None = None
    shortDisplayName: str | None = None


class ESPNCompetitor(BaseModel):
    homeAway: str
    score: str | None = None
    team: ESPNTeam


class ESPNBroadcast(BaseModel):
    names: list[str] = []


class ESPNCompetition(BaseModel):
    competitors: list[ESPNCompetitor] = []
    broadcasts: list[ESPNBroadcast] | None = None


class ESPNStatusType(BaseModel):
    detail: str
    state: str


class ESPNStatus(BaseModel):
    type: ESPNStatusType


class ESPNEvent(BaseModel):
    id: str
    shortName: str
    date: str
    status: ESPNStatus
    competitions: list[ESPNCompetition] = []

    def competitor(self, side: str) -> ESPNCompetitor | None:
        if not self.competitions:
            return None
        return next((c for c in self.competitions[0].competitors if c.homeAway == side), None)

    @property
    def broadcast_name(self) -> str | None:
        if not self.competitions or not self.competitions[0].broadcasts:
            return None
        for broadcast in self.competitions[0].broadcasts:
            if broadcast.names:
                return broadcast.names[0]
        return None

    @property
    def start(self) -> datetime | None:
        try:
            return parse_iso8601_to_utc(self.date)
        except DateFormatError:
            return None


class ESPNResponse(BaseModel):
    events: list[ESPNEvent] | None = None


def _team_name(competitor: ESPNCompetitor | None) -> str:
    if competitor is None:
        return ""
    team = competitor.team
    return team.displayName or team.shortDisplayName or team.abbreviation or ""


def event_to_fixture(event: ESPNEvent, sport: SportType) -> Fixture:
    """Flatten an ESPN event into a Fixture"""
    return Fixture(
        id=event.id,
        sport=sport.value,
        home=_team_name(event.competitor("home")),
        away=_team_name(event.competitor("away")),
        network=event.broadcast_name,
        start=event.start,
        status_detail=event.status.type.detail,
        state=event.status.type.state,
        league_label=sport.league_label,
    )


async def fetch_scoreboard(
    sport: SportType,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 15.0
) -> list[Fixture]:
    """
    Fetch today's scoreboard for a sport

    Args:
        sport: Sport to fetch
        client: Optional shared HTTP client
        timeout: HTTP timeout in seconds when no client is given

    Returns:
        Fixtures sorted by start time; empty on any network or decode failure
    """
    url = sport.endpoint
    if not url:
        logger.debug("No scoreboard endpoint for %s", sport.value)
        return []

    try:
        if client is not None:
            response = await client.get(url)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.get(url)
        response.raise_for_status()
        payload = ESPNResponse.model_validate_json(response.content)
    except (httpx.HTTPError, ValidationError) as exc:
        logger.error("Scoreboard fetch failed for %s: %s", sport.value, exc)
        return []

    fixtures = [event_to_fixture(event, sport) for event in payload.events or []]
    fixtures.sort(key=lambda fixture: (fixture.start is None, fixture.start or datetime.min))
    logger.info("Fetched %s fixtures for %s", len(fixtures), sport.value)
    return fixtures
