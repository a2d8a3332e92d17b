"""
Fixture Matcher

Picks the stream to play for a scoreboard fixture: an exact guide match when
one channel is airing the game, otherwise a short list of scored candidates.
"""
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from datetime import datetime
import logging

from streamguide.services.epg_query_service import current_program_for_channel
from streamguide.services.fetch_types import Channel, Fixture, ScheduleTable
from streamguide.services.smart_search import (
    DEFAULT_WEIGHTS,
    LanguagePreference,
    ScoringWeights,
    calculate_stream_score,
    is_banner,
    priority_sort,
    quality_score,
    tokenize,
)

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 5


@dataclass(slots=True)
class SmartSearchResult:
    """Winner to auto-play, or suggestions to offer for manual selection."""
    winner: Channel | None = None
    suggestions: list[Channel] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.winner is not None or bool(self.suggestions)


def _title_mentions_fixture(title: str, home_tokens: list[str], away_tokens: list[str]) -> bool:
    lower_title = title.lower()
    return all(token in lower_title for token in home_tokens) and all(
        token in lower_title for token in away_tokens
    )


def _team_bonus(lower_name: str, home_tokens: list[str], away_tokens: list[str], weights: ScoringWeights) -> int:
    hits_home = any(token in lower_name for token in home_tokens)
    hits_away = any(token in lower_name for token in away_tokens)
    if hits_home and hits_away:
        return weights.both_teams
    if hits_home or hits_away:
        return weights.one_team
    return 0


def find_streams_for_fixture(
    channels: Sequence[Channel],
    schedule: ScheduleTable,
    fixture: Fixture,
    *,
    now: datetime,
    hidden_ids: Collection[int] = (),
    limit: int = DEFAULT_SUGGESTION_LIMIT,
    language: LanguagePreference = LanguagePreference.US,
    weights: ScoringWeights | None = None
) -> SmartSearchResult:
    """
    Resolve a fixture to a stream

    Args:
        channels: Provider channel list
        schedule: Current schedule snapshot
        fixture: Game to find
        now: Moment used for "currently airing" lookups
        hidden_ids: Channel ids the user has hidden
        limit: Maximum number of suggestions
        language: Audience preference for scoring
        weights: Point values (DEFAULT_WEIGHTS when omitted)

    Returns:
        SmartSearchResult with a winner if a channel's current program names
        both teams, else up to `limit` suggestions ranked by score
    """
    weights = weights or DEFAULT_WEIGHTS
    home_tokens = tokenize(fixture.home)
    away_tokens = tokenize(fixture.away)
    visible = [channel for channel in channels if channel.id not in hidden_ids]

    if home_tokens or away_tokens:
        exact_matches = []
        for channel in visible:
            program = current_program_for_channel(schedule, channel, now)
            if program and _title_mentions_fixture(program.title, home_tokens, away_tokens):
                exact_matches.append(channel)

        if exact_matches:
            winner = priority_sort(exact_matches)[0]
            logger.info(
                "Fixture %s (%s vs %s): guide match on '%s'",
                fixture.id,
                fixture.home,
                fixture.away,
                winner.name,
            )
            return SmartSearchResult(winner=winner)

    scored: list[tuple[Channel, int]] = []
    for channel in visible:
        if is_banner(channel.name):
            continue
        score = calculate_stream_score(
            channel.name,
            fixture.sport,
            fixture.network,
            language=language,
            weights=weights,
        )
        score += _team_bonus(channel.name.lower(), home_tokens, away_tokens, weights)
        score += quality_score(channel.name) * weights.quality_multiplier
        scored.append((channel, score))

    scored.sort(key=lambda item: -item[1])
    suggestions = [channel for channel, _ in scored[:max(0, limit)]]

    if suggestions:
        logger.info(
            "Fixture %s (%s vs %s): no guide match, %s suggestions (best '%s')",
            fixture.id,
            fixture.home,
            fixture.away,
            len(suggestions),
            suggestions[0].name,
        )
    else:
        logger.warning("Fixture %s (%s vs %s): no candidate streams", fixture.id, fixture.home, fixture.away)

    return SmartSearchResult(suggestions=suggestions)
