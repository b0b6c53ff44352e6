"""Presentation calculator — display-only values for a scorecard.

Everything here is a pure function of the canonical score, the beatmap and
the user. The model is rebuilt from scratch on every update.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from .gradient import GradientRamp, star_color
from .models import (
    CanonicalScore,
    CanonicalUser,
    HitStat,
    Mod,
    ModIcon,
    OverrideSet,
    PresentationModel,
    RawBeatmapRecord,
    ScoringMode,
)

DARK_BADGE_THRESHOLD = 6.5
LIGHT_BADGE_TEXT = "#ffe475"
DARK_BADGE_TEXT = "#2c3b43"

HEART = "♥"
STAR = "☆"
FULL_COMBO_TEXT = "Full Combo!"
DIFFICULTY_MAX_LENGTH = 32
SHORT_ELLIPSIS = ".."


def format_number(value: float) -> str:
    """Thousands-separated integer string."""
    return f"{int(value):,}"


def format_accuracy(accuracy: float) -> str:
    """Accuracy fraction as a percentage with two decimals, without the sign."""
    return f"{accuracy * 100:.2f}"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def star_text_color(star_rating: float) -> str:
    return LIGHT_BADGE_TEXT if star_rating > DARK_BADGE_THRESHOLD else DARK_BADGE_TEXT


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - len(SHORT_ELLIPSIS)] + SHORT_ELLIPSIS


# ─── Hit-count grid ──────────────────────────────────────────────────────────

StatCell = tuple[str, str, Callable[[CanonicalScore], str]]

_STAT_CELLS: dict[str, StatCell] = {
    "300": ("300", "300", lambda s: format_number(s.count_300)),
    "100": ("100", "100", lambda s: format_number(s.count_100)),
    "50": ("50", "50", lambda s: format_number(s.count_50)),
    "miss": ("miss", "Miss", lambda s: format_number(s.count_miss)),
    "sliderend": (
        "sliderend",
        "Slider Ends",
        lambda s: f"{format_number(s.slider_ends)}/{format_number(s.slider_count)}",
    ),
    "combo": ("combo", "Combo", lambda s: f"{format_number(s.max_combo)}x"),
    "accuracy": ("accuracy", "Accuracy", lambda s: f"{format_accuracy(s.accuracy)}%"),
}

HIT_ROW_LAYOUTS: dict[ScoringMode, list[list[str]]] = {
    ScoringMode.MODERN: [["300", "100", "50"], ["miss", "sliderend"], ["combo", "accuracy"]],
    ScoringMode.CLASSIC: [["300", "100"], ["50", "miss"], ["combo", "accuracy"]],
}


def hit_count_rows(score: CanonicalScore) -> list[list[HitStat]]:
    """Labelled hit-count rows for the score's scoring mode."""
    rows = []
    for row in HIT_ROW_LAYOUTS[score.scoring_mode]:
        cells = []
        for name in row:
            key, label, render = _STAT_CELLS[name]
            cells.append(HitStat(key=key, label=label, value=render(score)))
        rows.append(cells)
    return rows


# ─── Individual values ───────────────────────────────────────────────────────


def pp_display(score: CanonicalScore, is_loved: bool) -> str:
    """Performance text; loved maps show a heart unless pp was overridden."""
    if is_loved:
        if not score.pp_overridden:
            return HEART
        return f"{format_number(round_half_up(score.pp))}pp {HEART}"
    return f"{format_number(round_half_up(score.pp))}pp"


def mod_icons(mods: list[Mod]) -> list[ModIcon]:
    return [ModIcon(acronym=mod.acronym, icon=f"icons/{mod.acronym}.png") for mod in mods]


def full_combo_text(score: CanonicalScore, overrides: OverrideSet, score_backed: bool) -> str:
    if overrides.full_combo or (score_backed and score.full_combo):
        return FULL_COMBO_TEXT
    return ""


def extra_lines(extra_text: str) -> list[str]:
    if not extra_text:
        return []
    return extra_text.replace("\r\n", "\n").split("\n")


def build_presentation(
    score: CanonicalScore,
    beatmap: RawBeatmapRecord,
    user: CanonicalUser,
    overrides: OverrideSet,
    ramp: Optional[GradientRamp],
    score_backed: bool = True,
) -> PresentationModel:
    return PresentationModel(
        star_color=star_color(beatmap.star_rating, ramp),
        star_text_color=star_text_color(beatmap.star_rating),
        star_text=f"{STAR} {beatmap.star_rating:.2f}",
        score_text=format_number(score.displayed_score),
        hit_rows=hit_count_rows(score),
        pp_text=pp_display(score, beatmap.is_loved),
        full_combo_text=full_combo_text(score, overrides, score_backed),
        is_loved=beatmap.is_loved,
        mod_icons=mod_icons(score.mods),
        difficulty_text=truncate_text(beatmap.difficulty, DIFFICULTY_MAX_LENGTH),
        rank_badge=score.rank,
        leaderboard_text=f"#{format_number(score.leaderboard)}",
        user_rank_text=f"#{format_number(user.user_rank)}",
        flag_icon=f"flags/{user.country.lower()}.png",
        extra_lines=extra_lines(overrides.extra_text),
    )
