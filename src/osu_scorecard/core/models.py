"""Pydantic data models — the shared scorecard objects.

Raw records mirror what the osu! API returns. Canonical, presentation and
layout models are derived per request and never patched in place.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class ScoringMode(str, Enum):
    """Score-total convention used for the displayed score."""

    CLASSIC = "classic"
    MODERN = "modern"


class RankedStatus(str, Enum):
    """Beatmapset ranked status as reported upstream."""

    GRAVEYARD = "graveyard"
    WIP = "wip"
    PENDING = "pending"
    RANKED = "ranked"
    APPROVED = "approved"
    QUALIFIED = "qualified"
    LOVED = "loved"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class ImageKind(str, Enum):
    """Image categories accepted by the image proxy."""

    AVATAR = "avatar"
    BACKGROUND = "background"


class Mod(BaseModel):
    """A gameplay mod, identified by its two-letter acronym."""

    acronym: str


# ─── Raw upstream records ────────────────────────────────────────────────────


class HitStatistics(BaseModel):
    great: Optional[int] = None
    ok: Optional[int] = None
    meh: Optional[int] = None
    miss: Optional[int] = None
    slider_tail_hit: Optional[int] = None


class RawScoreRecord(BaseModel):
    """A score as received from the osu! API. Any field may be missing."""

    id: Optional[int] = None
    legacy_score_id: Optional[int] = None
    has_replay: Optional[bool] = None
    total_score: Optional[int] = None
    classic_total_score: Optional[int] = None
    statistics: HitStatistics = Field(default_factory=HitStatistics)
    count_sliders: Optional[int] = None
    rank: Optional[str] = None
    accuracy: Optional[float] = Field(None, ge=0.0, le=1.0)
    max_combo: Optional[int] = None
    pp: Optional[float] = None
    rank_global: Optional[int] = None
    is_perfect_combo: Optional[bool] = None
    mods: list[Mod] = Field(default_factory=list)
    ended_at: Optional[datetime] = None


class RawBeatmapRecord(BaseModel):
    """Beatmap and beatmapset fields needed to draw a scorecard."""

    id: Optional[int] = Field(None, description="Beatmapset ID, used for cover lookup")
    title: str = ""
    difficulty: str = ""
    star_rating: float = Field(0.0, ge=0.0)
    cover: str = ""
    creator: str = ""
    status: RankedStatus = RankedStatus.UNKNOWN

    @property
    def is_loved(self) -> bool:
        return self.status == RankedStatus.LOVED


class RawUserRecord(BaseModel):
    username: str = ""
    avatar_url: str = ""
    country_code: str = ""
    global_rank: Optional[int] = None


class ScoreLookup(BaseModel):
    """Everything one score fetch returns: the score, its beatmap and its player."""

    score: RawScoreRecord
    beatmap: RawBeatmapRecord
    user: RawUserRecord


class BeatmapPreview(BaseModel):
    """A beatmap fetched by map ID with no score attached."""

    beatmap: RawBeatmapRecord


ScorecardSource = Union[ScoreLookup, BeatmapPreview]


# ─── User input ──────────────────────────────────────────────────────────────


class OverrideSet(BaseModel):
    """User-supplied replacements for upstream values.

    Text fields hold raw input; empty or whitespace-only text means the
    field is absent. Toggles are applied as-is.
    """

    score: Optional[str] = None
    count_300: Optional[str] = None
    count_100: Optional[str] = None
    count_50: Optional[str] = None
    count_miss: Optional[str] = None
    count_slider_ends: Optional[str] = None
    combo: Optional[str] = None
    accuracy: Optional[str] = Field(None, description="Percentage, 0-100")
    pp: Optional[str] = None
    rank: Optional[str] = None
    mods: Optional[str] = Field(None, description="Comma-separated acronyms, e.g. 'HD,DT'")
    leaderboard: Optional[str] = None

    username: Optional[str] = None
    user_rank: Optional[str] = None
    avatar_url: Optional[str] = None

    background_url: Optional[str] = None
    extra_text: str = ""
    scoring_mode: Optional[ScoringMode] = None
    full_combo: bool = False


# ─── Derived models ──────────────────────────────────────────────────────────


class CanonicalScore(BaseModel):
    """Single authoritative value per field after override reconciliation."""

    scoring_mode: ScoringMode
    displayed_score: int
    modern_total: int = 0
    classic_total: int = 0
    count_300: int = 0
    count_100: int = 0
    count_50: int = 0
    count_miss: int = 0
    slider_ends: int = 0
    slider_count: int = 0
    max_combo: int = 0
    accuracy: float = 0.0
    pp: float = 0.0
    pp_overridden: bool = False
    rank: str = "F"
    mods: list[Mod] = Field(default_factory=list)
    leaderboard: int = 0
    full_combo: bool = False


class CanonicalUser(BaseModel):
    username: str
    user_rank: int = 0
    avatar_url: str = ""
    country: str = "xx"


class HitStat(BaseModel):
    """One labelled cell in the hit-count grid."""

    key: str
    label: str
    value: str


class ModIcon(BaseModel):
    acronym: str
    icon: str


class PresentationModel(BaseModel):
    """Display-only values derived from a CanonicalScore and its beatmap."""

    star_color: str
    star_text_color: str
    star_text: str
    score_text: str
    hit_rows: list[list[HitStat]]
    pp_text: str
    full_combo_text: str = ""
    is_loved: bool = False
    mod_icons: list[ModIcon] = Field(default_factory=list)
    difficulty_text: str = ""
    rank_badge: str = "F"
    leaderboard_text: str = "#0"
    user_rank_text: str = "#0"
    flag_icon: str = ""
    extra_lines: list[str] = Field(default_factory=list)

    @property
    def shows_full_combo(self) -> bool:
        return bool(self.full_combo_text)


class LayoutPlan(BaseModel):
    """Fitted sizes and truncations for one scorecard."""

    title: str
    title_truncated: bool = False
    title_available_width: int
    left_section_width: int
    right_available_width: int
    pp_size_class: Optional[str] = None
    full_combo_size_class: Optional[str] = None
    height: int


class ImageRef(BaseModel):
    """An image the renderer must load, already routed through the proxy."""

    kind: ImageKind
    source_url: str = ""
    reference: str


class ScorecardLayout(BaseModel):
    """Complete layout description handed to the renderer."""

    source: str = Field(description="'score' or 'map'")
    score: CanonicalScore
    user: CanonicalUser
    presentation: PresentationModel
    plan: LayoutPlan
    beatmap_title: str
    creator: str
    background: ImageRef
    avatar: ImageRef
    width: int
