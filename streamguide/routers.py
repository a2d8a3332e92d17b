from datetime import datetime
import logging

from fastapi import APIRouter, HTTPException, Query

from streamguide.config import settings
from streamguide.schemas import (
    BannerRequest,
    BannerResponse,
    FixtureResponse,
    ProgramResponse,
    RankedCandidate,
    RankRequest,
    RankResponse,
)
from streamguide.services.epg_fetch_service import refresh_epg
from streamguide.services.epg_query_service import get_current_program
from streamguide.services.fetch_coordinator import get_schedule_store
from streamguide.services.fetch_types import count_programs
from streamguide.services.scheduler_service import epg_scheduler
from streamguide.services.scoreboard_service import SportType, fetch_scoreboard
from streamguide.services.smart_search import is_banner, rank_candidates, tokenize
from streamguide.utils.timezone import DateFormatError, parse_iso8601_to_utc, utc_now


logger = logging.getLogger(__name__)

main_router = APIRouter()


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = epg_scheduler.get_next_run_time()

    return {
        "service": "StreamGuide",
        "version": "0.1.0",
        "next_scheduled_refresh": next_run.isoformat() if next_run else None,
        "endpoints": {
            "fetch": "/fetch - Manually trigger guide refresh",
            "now": "/epg/{channel_key}/now - Program airing on a channel",
            "rank": "/match/rank - Rank candidate stream names (POST)",
            "banner": "/match/banner - Classify a channel name (POST)",
            "scoreboard": "/scoreboard/{sport} - Today's fixtures",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    store = get_schedule_store()
    next_run = epg_scheduler.get_next_run_time()
    return {
        "status": "ok",
        "scheduler_running": epg_scheduler.running,
        "next_refresh": next_run.isoformat() if next_run else None,
        "is_fetching": store.is_fetching(),
        "progress": store.progress,
        "generation": store.applied_generation,
        "channels": len(store.schedule),
        "programs": count_programs(store.schedule)
    }


@main_router.post("/fetch")
async def trigger_fetch() -> dict:
    """
    Manually trigger a guide refresh

    Downloads and parses every configured source, then swaps in the merged schedule
    """
    logger.info("Manual EPG refresh triggered via API")
    result = await refresh_epg()

    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])
    if result.get("status") == "failed":
        raise HTTPException(status_code=502, detail="No EPG source produced any programs")

    return result


@main_router.get("/epg/{channel_key}/now", response_model=ProgramResponse)
async def current_program(
    channel_key: str,
    at: str | None = Query(None, description="ISO8601 moment, defaults to now")
) -> ProgramResponse:
    """Program airing on a channel at the given moment"""
    if at is None:
        moment: datetime = utc_now()
    else:
        try:
            moment = parse_iso8601_to_utc(at)
        except DateFormatError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    program = get_current_program(get_schedule_store().schedule, channel_key, moment)
    if program is None:
        raise HTTPException(status_code=404, detail=f"No program airing on {channel_key}")

    return ProgramResponse.from_program(program)


@main_router.post("/match/rank", response_model=RankResponse)
async def rank_streams(request: RankRequest) -> RankResponse:
    """Order candidate stream names for a fixture, best first"""
    ranked = rank_candidates(
        request.names,
        request.sport,
        request.target_network,
        language=request.language,
        weights=settings.scoring,
    )
    candidates = [
        RankedCandidate(
            name=candidate.name,
            score=candidate.score,
            position=candidate.position,
            is_banner=is_banner(candidate.name),
        )
        for candidate in ranked
    ]
    best = next((candidate.name for candidate in candidates if not candidate.is_banner), None)
    return RankResponse(candidates=candidates, best=best)


@main_router.post("/match/banner", response_model=BannerResponse)
async def classify_name(request: BannerRequest) -> BannerResponse:
    return BannerResponse(
        name=request.name,
        is_banner=is_banner(request.name),
        tokens=tokenize(request.name),
    )


@main_router.get("/scoreboard/{sport}", response_model=list[FixtureResponse])
async def scoreboard(sport: SportType) -> list[FixtureResponse]:
    fixtures = await fetch_scoreboard(sport, timeout=settings.scoreboard_timeout_sec)
    return [FixtureResponse.from_fixture(fixture) for fixture in fixtures]
