"""
Tests for banner detection, tokenizing and stream scoring.
"""
import pytest
from pydantic import ValidationError

from streamguide.services.fetch_types import Channel
from streamguide.services.smart_search import (
    DEFAULT_WEIGHTS,
    LanguagePreference,
    ScoringWeights,
    StreamQuality,
    calculate_stream_score,
    detect_quality,
    is_banner,
    priority_sort,
    quality_score,
    rank_candidates,
    tokenize,
)


class TestIsBanner:
    """Decorative channel-list entries"""

    @pytest.mark.parametrize("name", [
        "★★★★★",
        "AB",
        "",
        None,
        "  ",
        "---- SPORTS ----",
        "****",
        "★★★ PLACEHOLDER ★★★",
        "●●● UK ●●●",
        "|•|",
    ])
    def test_banners(self, name):
        assert is_banner(name) is True

    @pytest.mark.parametrize("name", [
        "ESPN",
        "USA | ESPN HD",
        "★ ESPN ★",
        "Sky Sports Main Event",
        "beIN 1",
    ])
    def test_real_channels(self, name):
        assert is_banner(name) is False

    def test_surrounding_whitespace_ignored_for_length(self):
        assert is_banner("  AB  ") is True
        assert is_banner("  ABC  ") is False


class TestTokenize:
    """Team name tokens used for matching"""

    def test_parenthesized_suffix_stripped(self):
        assert tokenize("Duke (ESPN+)") == ["duke"]

    def test_stop_words_removed(self):
        assert tokenize("Michigan State University") == ["michigan"]
        assert tokenize("Manchester City FC") == ["manchester", "city"]
        assert tokenize("The Team at the Club") == []

    def test_single_letters_dropped(self):
        assert tokenize("St. John's") == ["john"]

    def test_lowercases_and_splits_punctuation(self):
        assert tokenize("Texas A&M Aggies") == ["texas", "aggies"]

    def test_network_name_kept(self):
        assert tokenize("ESPN Network") == ["espn", "network"]

    @pytest.mark.parametrize("text", ["", None, "(US)", "vs"])
    def test_empty_results(self, text):
        assert tokenize(text) == []


class TestCalculateStreamScore:
    """Integer scoring of candidate names"""

    def test_banner_gets_banner_score(self):
        assert calculate_stream_score("★★★ PLACEHOLDER ★★★", "ncaab", "ESPN+") == DEFAULT_WEIGHTS.banner

    def test_premium_network_and_region(self):
        score = calculate_stream_score("ESPN+ Network (US)", "ncaab", "ESPN+")
        assert score == DEFAULT_WEIGHTS.premium_network + DEFAULT_WEIGHTS.preferred_region

    def test_premium_requires_matching_network(self):
        assert calculate_stream_score("ESPN+ Network", "ncaab", "ABC") == 0
        assert calculate_stream_score("ESPN 1", "ncaab", "ESPN+") == 0

    def test_network_matching_ignores_case_and_padding(self):
        assert calculate_stream_score("espn+ 04", "ncaab", " ESPN+ ") == DEFAULT_WEIGHTS.premium_network

    def test_foreign_language_penalty(self):
        assert calculate_stream_score("Canal Plus (FR)") == DEFAULT_WEIGHTS.foreign_language
        assert calculate_stream_score("ESPN Deportes Latino") == DEFAULT_WEIGHTS.foreign_language

    def test_resolution_bonuses(self):
        assert calculate_stream_score("NFL Network 4K") == DEFAULT_WEIGHTS.resolution_4k
        assert calculate_stream_score("NFL Network UHD") == DEFAULT_WEIGHTS.resolution_4k
        assert calculate_stream_score("NFL Network 1080") == DEFAULT_WEIGHTS.resolution_fhd
        assert calculate_stream_score("ESPN FHD USA") == DEFAULT_WEIGHTS.resolution_fhd + DEFAULT_WEIGHTS.preferred_region

    def test_plain_name_scores_zero(self):
        assert calculate_stream_score("Fox Sports 1") == 0

    def test_language_any_disables_language_rules(self):
        assert calculate_stream_score("Canal Plus (FR)", language=LanguagePreference.ANY) == 0
        assert calculate_stream_score("ESPN (US)", language=LanguagePreference.ANY) == 0

    def test_other_language_preference(self):
        assert calculate_stream_score("Canal Plus (FR)", language=LanguagePreference.FR) == DEFAULT_WEIGHTS.preferred_region
        assert calculate_stream_score("ESPN (US)", language=LanguagePreference.FR) == DEFAULT_WEIGHTS.foreign_language

    def test_custom_weights(self):
        weights = ScoringWeights(preferred_region=20_000, premium_network=90_000)
        assert calculate_stream_score("Fox (US)", weights=weights) == 20_000

    def test_ordering_of_signals(self):
        """region beats resolution, resolution beats plain, plain beats foreign, foreign beats banner"""
        names = ["Fox (US)", "Fox 4K", "Fox", "Fox (ES)", "---"]
        scores = [calculate_stream_score(name) for name in names]
        assert scores == sorted(scores, reverse=True)
        assert len(set(scores)) == len(scores)


class TestRankCandidates:
    """Ordering of candidate lists"""

    CANDIDATES = ["ESPN+ Network (US)", "Canal Plus (FR)", "★★★ PLACEHOLDER ★★★"]

    @pytest.mark.parametrize("order", [
        [0, 1, 2],
        [2, 1, 0],
        [1, 2, 0],
        [2, 0, 1],
    ])
    def test_premium_first_banner_last_in_any_order(self, order):
        names = [self.CANDIDATES[i] for i in order]
        ranked = rank_candidates(names, "ncaab", "ESPN+")

        assert ranked[0].name == "ESPN+ Network (US)"
        assert ranked[-1].name == "★★★ PLACEHOLDER ★★★"

    def test_ties_keep_input_order(self):
        ranked = rank_candidates(["Fox 1", "Fox 2", "Fox 3"])
        assert [c.name for c in ranked] == ["Fox 1", "Fox 2", "Fox 3"]
        assert [c.position for c in ranked] == [0, 1, 2]

    def test_positions_refer_to_input(self):
        ranked = rank_candidates(["Fox", "Fox 4K"])
        assert ranked[0].name == "Fox 4K"
        assert ranked[0].position == 1

    def test_empty_input(self):
        assert rank_candidates([]) == []


class TestScoringWeights:
    """Tunable point values keep their relative order"""

    def test_defaults_valid(self):
        assert DEFAULT_WEIGHTS.banner < DEFAULT_WEIGHTS.foreign_language < 0

    @pytest.mark.parametrize("overrides", [
        {"banner": -10},
        {"foreign_language": 5},
        {"resolution_fhd": 6_000},
        {"preferred_region": 4_000},
        {"premium_network": 1_000},
        {"one_team": 70_000},
        {"quality_multiplier": -1},
    ])
    def test_invalid_ordering_rejected(self, overrides):
        with pytest.raises(ValidationError):
            ScoringWeights(**overrides)


class TestQuality:
    """Quality classification and result ordering"""

    @pytest.mark.parametrize("name,expected", [
        ("Sky Sports 4K", StreamQuality.FOUR_K),
        ("TSN FHD", StreamQuality.FHD),
        ("TSN 720", StreamQuality.HD),
        ("TSN SD", StreamQuality.SD),
        ("TSN", StreamQuality.UNKNOWN),
    ])
    def test_detect_quality_from_name(self, name, expected):
        assert detect_quality(name) is expected

    def test_detect_quality_prefers_height(self):
        assert detect_quality("TSN SD", height=1080) is StreamQuality.FHD
        assert detect_quality("TSN", height=2160) is StreamQuality.FOUR_K

    def test_quality_score_values(self):
        assert quality_score("Fox 4K") == 100
        assert quality_score("Fox (US)") == 150
        assert quality_score("Fox (ES)") == -300
        assert quality_score("Fox") == 0

    @pytest.mark.parametrize("name", ["Duke Blue Devils Live", "Milwaukee Bucks", "Kentucky Wildcats", "Jerusalem TV"])
    def test_region_markers_need_word_boundaries(self, name):
        assert quality_score(name) == 0
        assert calculate_stream_score(name) == 0

    def test_standalone_region_marker_counts(self):
        assert quality_score("Sky Sports UK") == 150
        assert quality_score("ESPN(US)") == 150

    def test_priority_sort(self):
        channels = [
            Channel(id=1, name="beta", stream_url="u"),
            Channel(id=2, name="Alpha", stream_url="u"),
            Channel(id=3, name="Gamma 4K", stream_url="u"),
            Channel(id=4, name="Delta (ES)", stream_url="u"),
        ]
        assert [c.id for c in priority_sort(channels)] == [3, 2, 1, 4]
