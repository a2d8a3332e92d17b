"""
Smart Search heuristics

Banner detection, team-name tokenizing and integer scoring used to rank
channel names for a sports fixture. Everything here is pure and synchronous.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, model_validator

if TYPE_CHECKING:
    from streamguide.services.fetch_types import Channel


BANNER_SYMBOLS = frozenset("✦●★|•▬▭□■◈▣◦✧")

STOP_WORDS = frozenset({
    "univ", "university", "state", "st", "vs", "at", "the", "club", "fc", "team", "of", "and",
})

_SYMBOL_RUN = re.compile(r"[" + re.escape("".join(sorted(BANNER_SYMBOLS))) + r"*]{3,}")
_PARENTHESIZED = re.compile(r"\(.*?\)")
_NON_ALPHANUMERIC = re.compile(r"[\W_]+")

# target network -> marker that must appear in the channel name
PREMIUM_NETWORK_MARKERS: dict[str, str] = {
    "espn+": "espn+",
}

# language code -> tags identifying a channel aimed at that audience
LANGUAGE_TAGS: dict[str, tuple[str, ...]] = {
    "en": ("(us)", "(uk)", "(ca)", "english"),
    "es": ("(es)", "spanish", "latino"),
    "fr": ("(fr)", "french"),
    "it": ("(it)", "italian"),
    "de": ("(de)", "german"),
    "pl": ("(pl)",),
    "ar": ("(ar)",),
}


class StreamQuality(str, Enum):
    FOUR_K = "4K / UHD"
    FHD = "FHD (1080p)"
    HD = "HD (720p)"
    SD = "SD"
    UNKNOWN = "Unknown"


class LanguagePreference(str, Enum):
    ANY = "any"
    US = "en-us"
    UK = "en-gb"
    CA = "en-ca"
    ES = "es"
    FR = "fr"
    DE = "de"
    IT = "it"

    @property
    def language_code(self) -> str | None:
        if self is LanguagePreference.ANY:
            return None
        return self.value.split("-", 1)[0]

    @property
    def region_markers(self) -> tuple[str, ...]:
        """Name fragments that mark a feed for this audience's home region"""
        return _REGION_MARKERS[self]


_REGION_MARKERS: dict[LanguagePreference, tuple[str, ...]] = {
    LanguagePreference.ANY: (),
    LanguagePreference.US: ("usa", "(us)"),
    LanguagePreference.UK: ("(uk)", "britain"),
    LanguagePreference.CA: ("(ca)", "canada"),
    LanguagePreference.ES: ("(es)", "espana"),
    LanguagePreference.FR: ("(fr)", "france"),
    LanguagePreference.DE: ("(de)", "germany"),
    LanguagePreference.IT: ("(it)", "italia"),
}


class ScoringWeights(BaseModel):
    """Point values for calculate_stream_score and fixture matching.

    The values are tunable; only their relative order is relied upon.
    """

    banner: int = -100_000
    foreign_language: int = -50_000
    premium_network: int = 80_000
    preferred_region: int = 10_000
    resolution_4k: int = 5_000
    resolution_fhd: int = 3_000
    both_teams: int = 60_000
    one_team: int = 15_000
    quality_multiplier: int = 10

    @model_validator(mode="after")
    def validate_ordering(self):
        """Keep banner < foreign < 0 < FHD < 4K < region < premium."""
        ladder = [
            ("banner", self.banner),
            ("foreign_language", self.foreign_language),
            ("base", 0),
            ("resolution_fhd", self.resolution_fhd),
            ("resolution_4k", self.resolution_4k),
            ("preferred_region", self.preferred_region),
            ("premium_network", self.premium_network),
        ]
        for (low_name, low), (high_name, high) in zip(ladder, ladder[1:]):
            if low >= high:
                raise ValueError(f"{low_name} ({low}) must be lower than {high_name} ({high})")
        if self.one_team >= self.both_teams:
            raise ValueError("one_team must be lower than both_teams")
        if self.quality_multiplier < 0:
            raise ValueError("quality_multiplier must be >= 0")
        return self


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    name: str
    score: int
    position: int


def is_banner(name: str | None) -> bool:
    """
    Decide whether a channel-list entry is decoration rather than a stream

    A name is a banner when its separator glyphs outnumber its letters and
    digits, when it contains '---' or a run of three separator glyphs
    ('★★★', '****'), or when it is shorter than 3 characters.
    """
    clean_name = (name or "").strip()
    if len(clean_name) < 3 or "---" in clean_name:
        return True
    if _SYMBOL_RUN.search(clean_name):
        return True

    symbol_count = sum(1 for char in clean_name if char in BANNER_SYMBOLS)
    alphanumeric_count = sum(1 for char in clean_name if char.isalnum())
    return symbol_count > alphanumeric_count


def tokenize(text: str | None) -> list[str]:
    """Lowercase, drop '(...)' groups, split on non-alphanumerics, remove noise words"""
    cleaned = _PARENTHESIZED.sub("", (text or "").lower())
    return [
        token
        for token in _NON_ALPHANUMERIC.split(cleaned)
        if len(token) > 1 and token not in STOP_WORDS
    ]


def _has_any(haystack: str, needles: Iterable[str]) -> bool:
    return any(needle in haystack for needle in needles)


def _marker_pattern(marker: str) -> re.Pattern[str]:
    head = r"(?<![a-z0-9])" if marker[0].isalnum() else ""
    tail = r"(?![a-z0-9])" if marker[-1].isalnum() else ""
    return re.compile(head + re.escape(marker) + tail)


def _has_marker(lower_name: str, markers: Iterable[str]) -> bool:
    """Like _has_any, but word markers must stand alone ("uk" is not in "duke")"""
    return any(_marker_pattern(marker).search(lower_name) for marker in markers)


def _carries_foreign_tag(lower_name: str, language: LanguagePreference) -> bool:
    own_code = language.language_code
    if own_code is None:
        return False
    return any(
        _has_marker(lower_name, tags)
        for code, tags in LANGUAGE_TAGS.items()
        if code != own_code
    )


def calculate_stream_score(
    name: str | None,
    sport: str | None = None,
    target_network: str | None = None,
    *,
    language: LanguagePreference = LanguagePreference.US,
    weights: ScoringWeights | None = None
) -> int:
    """
    Score a channel name as a candidate stream for a fixture

    Args:
        name: Channel name as listed by the provider
        sport: Sport or category of the fixture; the current weights are the same for every sport
        target_network: Broadcast network announced for the fixture, if any
        language: Audience preference driving the region bonus and foreign-tag penalty
        weights: Point values (DEFAULT_WEIGHTS when omitted)

    Returns:
        Integer score, higher is better; banners always get weights.banner
    """
    weights = weights or DEFAULT_WEIGHTS
    if is_banner(name):
        return weights.banner

    score = 0
    lower_name = (name or "").lower()
    lower_network = (target_network or "").strip().lower()

    marker = PREMIUM_NETWORK_MARKERS.get(lower_network)
    if marker and marker in lower_name:
        score += weights.premium_network

    if _carries_foreign_tag(lower_name, language):
        score += weights.foreign_language
    if _has_marker(lower_name, language.region_markers):
        score += weights.preferred_region
    if "4k" in lower_name or "uhd" in lower_name:
        score += weights.resolution_4k
    if "fhd" in lower_name or "1080" in lower_name:
        score += weights.resolution_fhd
    return score


def rank_candidates(
    names: Sequence[str],
    sport: str | None = None,
    target_network: str | None = None,
    *,
    language: LanguagePreference = LanguagePreference.US,
    weights: ScoringWeights | None = None
) -> list[ScoredCandidate]:
    """Score every name and order best first; equal scores keep input order"""
    scored = [
        ScoredCandidate(
            name=name,
            score=calculate_stream_score(
                name, sport, target_network, language=language, weights=weights
            ),
            position=index,
        )
        for index, name in enumerate(names)
    ]
    return sorted(scored, key=lambda candidate: -candidate.score)


def detect_quality(name: str | None, height: int | None = None) -> StreamQuality:
    """Classify a stream by reported frame height, else by markers in its name"""
    if height is not None:
        if height >= 2160:
            return StreamQuality.FOUR_K
        if height >= 1080:
            return StreamQuality.FHD
        if height >= 720:
            return StreamQuality.HD
        if height >= 480:
            return StreamQuality.SD

    lower = (name or "").lower()
    if _has_any(lower, ("4k", "uhd", "2160")):
        return StreamQuality.FOUR_K
    if _has_any(lower, ("fhd", "1080")):
        return StreamQuality.FHD
    if _has_any(lower, ("hd", "720", "hevc", "h265", "h.265", "60fps")):
        return StreamQuality.HD
    if _has_any(lower, ("sd", "576", "480")):
        return StreamQuality.SD
    return StreamQuality.UNKNOWN


def quality_score(name: str | None) -> int:
    """Coarse preference used to order search results and fixture candidates"""
    score = 0
    lower = (name or "").lower()
    if "4k" in lower or "uhd" in lower:
        score += 100
    if "fhd" in lower or "1080" in lower:
        score += 80
    if "720" in lower or "hd" in lower:
        score += 50
    if _has_marker(lower, ("usa", "(us)", "uk", "english")):
        score += 150
    if _has_marker(lower, LANGUAGE_TAGS["es"] + LANGUAGE_TAGS["fr"] + ("(it)", "(pl)", "(ar)")):
        score -= 300
    return score


def priority_sort(channels: Iterable[Channel]) -> list[Channel]:
    """Best quality first, then by name (case-insensitive)"""
    return sorted(channels, key=lambda channel: (-quality_score(channel.name), channel.name.casefold()))
