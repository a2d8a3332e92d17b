"""
Tests for resolving a scoreboard fixture to a stream.
"""
from datetime import datetime, timezone

from streamguide.services.fetch_types import Channel, Fixture
from streamguide.services.fixture_matcher import find_streams_for_fixture
from streamguide.services.smart_search import LanguagePreference


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


DUKE_UNC = Fixture(id="401", sport="ncaab", home="Duke", away="North Carolina", network="ESPN2")


class TestGuideMatch:
    """A channel airing the game wins outright"""

    def test_exact_guide_match_picks_best_quality(self, channel_list, game_schedule):
        result = find_streams_for_fixture(channel_list, game_schedule, DUKE_UNC, now=utc(2025, 1, 15, 19))

        assert result.found
        assert result.winner.id == 4
        assert result.suggestions == []

    def test_hidden_winner_falls_back_to_next_match(self, channel_list, game_schedule):
        result = find_streams_for_fixture(
            channel_list, game_schedule, DUKE_UNC, now=utc(2025, 1, 15, 19), hidden_ids={4}
        )
        assert result.winner.id == 2

    def test_partial_title_is_not_a_match(self, channel_list, game_schedule):
        fixture = Fixture(id="402", sport="ncaab", home="Duke", away="Virginia")
        result = find_streams_for_fixture(channel_list, game_schedule, fixture, now=utc(2025, 1, 15, 19))
        assert result.winner is None


class TestSuggestions:
    """Scored fallback when nothing in the guide matches"""

    LATE = utc(2025, 1, 15, 23)

    def test_ranked_suggestions(self, channel_list, game_schedule):
        result = find_streams_for_fixture(channel_list, game_schedule, DUKE_UNC, now=self.LATE)

        assert result.winner is None
        assert [c.id for c in result.suggestions] == [4, 5, 2, 3, 6]

    def test_banners_never_suggested(self, channel_list, game_schedule):
        result = find_streams_for_fixture(channel_list, game_schedule, DUKE_UNC, now=self.LATE)
        assert 1 not in [c.id for c in result.suggestions]

    def test_limit(self, channel_list, game_schedule):
        result = find_streams_for_fixture(channel_list, game_schedule, DUKE_UNC, now=self.LATE, limit=2)
        assert [c.id for c in result.suggestions] == [4, 5]

    def test_both_teams_in_name_beats_one(self, game_schedule):
        channels = [
            Channel(id=1, name="Duke Live", stream_url="u"),
            Channel(id=2, name="Duke vs North Carolina Live", stream_url="u"),
        ]
        result = find_streams_for_fixture(channels, game_schedule, DUKE_UNC, now=self.LATE)
        assert [c.id for c in result.suggestions] == [2, 1]

    def test_language_preference_applied(self, game_schedule):
        channels = [
            Channel(id=1, name="Fox (US)", stream_url="u"),
            Channel(id=2, name="Fox (ES)", stream_url="u"),
        ]
        fixture = Fixture(id="9", sport="soccer", home="Club America", away="Chivas")
        result = find_streams_for_fixture(
            channels, game_schedule, fixture, now=self.LATE, language=LanguagePreference.ES
        )
        assert result.suggestions[0].id == 2

    def test_fixture_without_team_names(self, channel_list, game_schedule):
        fixture = Fixture(id="10", sport="f1", home="", away="")
        result = find_streams_for_fixture(channel_list, game_schedule, fixture, now=utc(2025, 1, 15, 19))

        assert result.winner is None
        assert result.suggestions[0].id == 4

    def test_nothing_found(self, game_schedule):
        result = find_streams_for_fixture([], game_schedule, DUKE_UNC, now=self.LATE)
        assert not result.found
