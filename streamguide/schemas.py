from datetime import datetime

from pydantic import BaseModel, Field

from streamguide.services.smart_search import LanguagePreference
from streamguide.services.fetch_types import Fixture, Program


class ProgramResponse(BaseModel):
    """Single program data"""
    channel_key: str
    title: str
    start_time: datetime
    stop_time: datetime
    description: str | None = None

    @classmethod
    def from_program(cls, program: Program) -> "ProgramResponse":
        return cls(
            channel_key=program.channel_key,
            title=program.title,
            start_time=program.start,
            stop_time=program.stop,
            description=program.description,
        )


class CachedProgram(BaseModel):
    """On-disk form of a program inside the schedule cache"""
    title: str = Field(..., min_length=1)
    start: datetime
    stop: datetime
    description: str | None = None

    @classmethod
    def from_program(cls, program: Program) -> "CachedProgram":
        return cls(
            title=program.title,
            start=program.start,
            stop=program.stop,
            description=program.description,
        )

    def to_program(self, channel_key: str) -> Program:
        return Program(
            channel_key=channel_key,
            title=self.title,
            start=self.start,
            stop=self.stop,
            description=self.description,
        )


class RankRequest(BaseModel):
    """Candidate channel names to rank for a fixture"""
    names: list[str] = Field(..., min_length=1, description="Channel names in their listing order")
    sport: str | None = Field(None, description="Sport or category of the fixture")
    target_network: str | None = Field(None, description="Broadcast network announced for the fixture")
    language: LanguagePreference = Field(LanguagePreference.US, description="Audience language preference")


class RankedCandidate(BaseModel):
    name: str
    score: int
    position: int = Field(..., description="Index of the name in the request")
    is_banner: bool


class RankResponse(BaseModel):
    candidates: list[RankedCandidate]
    best: str | None = Field(None, description="Highest-ranked non-banner name, if any")


class BannerRequest(BaseModel):
    name: str


class BannerResponse(BaseModel):
    name: str
    is_banner: bool
    tokens: list[str]


class FixtureResponse(BaseModel):
    """Scoreboard entry"""
    id: str
    sport: str
    home: str
    away: str
    network: str | None = None
    start: datetime | None = None
    status_detail: str | None = None
    state: str | None = None
    league_label: str | None = None

    @classmethod
    def from_fixture(cls, fixture: Fixture) -> "FixtureResponse":
        return cls(
            id=fixture.id,
            sport=fixture.sport,
            home=fixture.home,
            away=fixture.away,
            network=fixture.network,
            start=fixture.start,
            status_detail=fixture.status_detail,
            state=fixture.state,
            league_label=fixture.league_label,
        )


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'REFRESH_FAILED', 'VALIDATION_ERROR')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")


class StandardErrorResponse(BaseModel):
    """Standardized error response for all endpoints"""
    status: str = Field("error", description="Status indicator")
    timestamp: str = Field(..., description="ISO8601 timestamp of error")
    error: ErrorDetail = Field(..., description="Error details")
