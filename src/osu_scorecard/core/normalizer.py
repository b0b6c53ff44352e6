"""Score normalization — reconciles upstream records with user overrides.

Every field resolves independently: a parseable override wins, then the
upstream value, then a documented default. Malformed overrides never raise
past this module; they are logged and ignored.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Callable, Optional, TypeVar

from .errors import OverrideValidationError
from .models import (
    BeatmapPreview,
    CanonicalScore,
    CanonicalUser,
    Mod,
    OverrideSet,
    RawScoreRecord,
    ScoreLookup,
    ScorecardSource,
    ScoringMode,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SCORE = 999_999_999
MAX_USERNAME_LENGTH = 15
PREVIEW_SLIDER_COUNT = 100
DEFAULT_RANK = "F"
VALID_RANKS = ("XH", "X", "SH", "S", "A", "B", "C", "D", "F")

GUEST_USERNAME = "Guest"
GUEST_AVATAR_URL = "https://osu.ppy.sh/images/layout/avatar-guest.png"
GUEST_COUNTRY = "xx"

_MOD_ACRONYM = re.compile(r"^[A-Z]{2}$")
_IMAGE_URL = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp)(\?.*)?$", re.IGNORECASE)


# ─── Override parsers ────────────────────────────────────────────────────────


def _text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_count(field: str, raw: str) -> int:
    """Parse a non-negative integer count. Negative input clamps to 0."""
    try:
        value = int(raw.replace(",", ""))
    except ValueError:
        raise OverrideValidationError(field, raw, "not an integer") from None
    return max(0, value)


def parse_score_total(field: str, raw: str) -> int:
    return min(parse_count(field, raw), MAX_SCORE)


def parse_accuracy(field: str, raw: str) -> float:
    """Parse a percentage (0-100) into a fraction."""
    try:
        percent = float(raw.rstrip("%"))
    except ValueError:
        raise OverrideValidationError(field, raw, "not a number") from None
    if not math.isfinite(percent):
        raise OverrideValidationError(field, raw, "not a finite number")
    return max(0.0, min(100.0, percent)) / 100


def parse_pp(field: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise OverrideValidationError(field, raw, "not a number") from None
    if not math.isfinite(value):
        raise OverrideValidationError(field, raw, "not a finite number")
    return max(0.0, value)


def parse_rank(field: str, raw: str) -> str:
    rank = raw.upper()
    if rank not in VALID_RANKS:
        raise OverrideValidationError(field, raw, f"rank must be one of {', '.join(VALID_RANKS)}")
    return rank


def parse_username(field: str, raw: str) -> str:
    return raw[:MAX_USERNAME_LENGTH]


def parse_image_url(field: str, raw: str) -> str:
    if not _IMAGE_URL.match(raw):
        raise OverrideValidationError(field, raw, "not an http(s) image URL")
    return raw


def parse_mods(mods: Optional[str]) -> list[Mod]:
    """Parse a comma-separated list of mod acronyms.

    Tokens are trimmed and upper-cased; anything that is not exactly two
    letters is dropped. Never raises.
    """
    if not mods or not mods.strip():
        return []
    codes = (token.strip().upper() for token in mods.split(","))
    return [Mod(acronym=code) for code in codes if _MOD_ACRONYM.match(code)]


def resolve_field(
    field: str,
    override: Optional[str],
    parser: Callable[[str, str], T],
    upstream: Optional[T],
    default: T,
) -> T:
    """Resolve one field: parseable override, else upstream, else default."""
    raw = _text(override)
    if raw is not None:
        try:
            return parser(field, raw)
        except OverrideValidationError as exc:
            logger.debug("Ignoring override %s", exc)
    if upstream is not None:
        return upstream
    return default


# ─── Scoring mode ────────────────────────────────────────────────────────────


def detect_scoring_mode(score: RawScoreRecord) -> ScoringMode:
    """Guess whether a score was set on the modern client.

    Modern scores carry no legacy score ID and keep their replay. Upstream
    exposes no authoritative flag, so this heuristic may drift if the API
    changes how those fields are populated.
    """
    if not score.legacy_score_id and score.has_replay is not False:
        return ScoringMode.MODERN
    return ScoringMode.CLASSIC


def resolve_scoring_mode(source: ScorecardSource, overrides: OverrideSet) -> ScoringMode:
    if overrides.scoring_mode is not None:
        return overrides.scoring_mode
    if isinstance(source, ScoreLookup):
        return detect_scoring_mode(source.score)
    return ScoringMode.CLASSIC


# ─── Canonical records ───────────────────────────────────────────────────────


def normalize_score(lookup: ScoreLookup, overrides: OverrideSet) -> CanonicalScore:
    """Build the canonical score for a fetched score."""
    raw = lookup.score
    stats = raw.statistics
    mode = resolve_scoring_mode(lookup, overrides)

    modern_total = raw.total_score or 0
    classic_total = raw.classic_total_score or 0
    if mode == ScoringMode.MODERN:
        modern_total = resolve_field("score", overrides.score, parse_score_total, raw.total_score, 0)
        displayed = modern_total
    else:
        classic_total = resolve_field("score", overrides.score, parse_score_total, raw.classic_total_score, 0)
        displayed = classic_total

    pp_override = _parsed_or_none("pp", overrides.pp, parse_pp)
    mods_text = _text(overrides.mods)

    return CanonicalScore(
        scoring_mode=mode,
        displayed_score=displayed,
        modern_total=modern_total,
        classic_total=classic_total,
        count_300=resolve_field("count_300", overrides.count_300, parse_count, stats.great, 0),
        count_100=resolve_field("count_100", overrides.count_100, parse_count, stats.ok, 0),
        count_50=resolve_field("count_50", overrides.count_50, parse_count, stats.meh, 0),
        count_miss=resolve_field("count_miss", overrides.count_miss, parse_count, stats.miss, 0),
        slider_ends=resolve_field(
            "count_slider_ends", overrides.count_slider_ends, parse_count, stats.slider_tail_hit, 0
        ),
        slider_count=raw.count_sliders or 0,
        max_combo=resolve_field("combo", overrides.combo, parse_count, raw.max_combo, 0),
        accuracy=resolve_field("accuracy", overrides.accuracy, parse_accuracy, raw.accuracy, 0.0),
        pp=pp_override if pp_override is not None else (raw.pp or 0.0),
        pp_overridden=pp_override is not None,
        rank=resolve_field("rank", overrides.rank, parse_rank, _upstream_rank(raw.rank), DEFAULT_RANK),
        mods=parse_mods(mods_text) if mods_text is not None else list(raw.mods),
        leaderboard=resolve_field("leaderboard", overrides.leaderboard, parse_count, raw.rank_global, 0),
        full_combo=bool(raw.is_perfect_combo),
    )


def normalize_preview(preview: BeatmapPreview, overrides: OverrideSet) -> CanonicalScore:
    """Build a representative empty score for a beatmap with no score yet."""
    mode = resolve_scoring_mode(preview, overrides)
    displayed = resolve_field("score", overrides.score, parse_score_total, None, 0)
    pp_override = _parsed_or_none("pp", overrides.pp, parse_pp)

    return CanonicalScore(
        scoring_mode=mode,
        displayed_score=displayed,
        modern_total=displayed if mode == ScoringMode.MODERN else 0,
        classic_total=displayed if mode == ScoringMode.CLASSIC else 0,
        count_300=resolve_field("count_300", overrides.count_300, parse_count, None, 0),
        count_100=resolve_field("count_100", overrides.count_100, parse_count, None, 0),
        count_50=resolve_field("count_50", overrides.count_50, parse_count, None, 0),
        count_miss=resolve_field("count_miss", overrides.count_miss, parse_count, None, 0),
        slider_ends=resolve_field("count_slider_ends", overrides.count_slider_ends, parse_count, None, 0),
        slider_count=PREVIEW_SLIDER_COUNT,
        max_combo=resolve_field("combo", overrides.combo, parse_count, None, 0),
        accuracy=resolve_field("accuracy", overrides.accuracy, parse_accuracy, None, 0.0),
        pp=pp_override if pp_override is not None else 0.0,
        pp_overridden=pp_override is not None,
        rank=resolve_field("rank", overrides.rank, parse_rank, None, DEFAULT_RANK),
        mods=parse_mods(overrides.mods),
        leaderboard=resolve_field("leaderboard", overrides.leaderboard, parse_count, None, 0),
        full_combo=False,
    )


def normalize(source: ScorecardSource, overrides: OverrideSet) -> CanonicalScore:
    if isinstance(source, ScoreLookup):
        return normalize_score(source, overrides)
    return normalize_preview(source, overrides)


def normalize_user(source: ScorecardSource, overrides: OverrideSet) -> CanonicalUser:
    """Resolve the player shown on the card; previews get a guest."""
    if isinstance(source, ScoreLookup):
        user = source.user
        return CanonicalUser(
            username=resolve_field("username", overrides.username, parse_username, user.username or None, ""),
            user_rank=resolve_field("user_rank", overrides.user_rank, parse_count, user.global_rank, 0),
            avatar_url=resolve_field("avatar_url", overrides.avatar_url, parse_image_url, user.avatar_url or None, ""),
            country=user.country_code or GUEST_COUNTRY,
        )
    return CanonicalUser(
        username=resolve_field("username", overrides.username, parse_username, None, GUEST_USERNAME),
        user_rank=resolve_field("user_rank", overrides.user_rank, parse_count, None, 0),
        avatar_url=resolve_field("avatar_url", overrides.avatar_url, parse_image_url, None, GUEST_AVATAR_URL),
        country=GUEST_COUNTRY,
    )


def _parsed_or_none(field: str, override: Optional[str], parser: Callable[[str, str], T]) -> Optional[T]:
    raw = _text(override)
    if raw is None:
        return None
    try:
        return parser(field, raw)
    except OverrideValidationError as exc:
        logger.debug("Ignoring override %s", exc)
        return None


def _upstream_rank(rank: Optional[str]) -> Optional[str]:
    if rank and rank.upper() in VALID_RANKS:
        return rank.upper()
    return None
