"""Shared fixtures for scorecard tests."""

from typing import Optional

import pytest

from osu_scorecard.core.clients.images import ImageProxy
from osu_scorecard.core.gradient import GradientRamp
from osu_scorecard.core.layout import FixedWidthMeasurer
from osu_scorecard.core.models import (
    BeatmapPreview,
    HitStatistics,
    Mod,
    RankedStatus,
    RawBeatmapRecord,
    RawScoreRecord,
    RawUserRecord,
    ScoreLookup,
)


def make_beatmap(**fields) -> RawBeatmapRecord:
    values = dict(
        id=1001,
        title="Blue Zenith",
        difficulty="FOUR DIMENSIONS",
        star_rating=5.2,
        cover="https://assets.ppy.sh/beatmaps/1001/covers/raw.jpg",
        creator="Asphyxia",
        status=RankedStatus.RANKED,
    )
    values.update(fields)
    return RawBeatmapRecord(**values)


def make_lookup(
    beatmap: Optional[RawBeatmapRecord] = None,
    user: Optional[RawUserRecord] = None,
    statistics: Optional[HitStatistics] = None,
    **score_fields,
) -> ScoreLookup:
    """A classic-scoring score with sensible defaults."""
    values = dict(
        id=4242,
        legacy_score_id=3_000_000_001,
        has_replay=True,
        total_score=1_012_345,
        classic_total_score=987_654,
        count_sliders=420,
        rank="S",
        accuracy=0.97,
        max_combo=800,
        pp=245.4,
        rank_global=12,
        is_perfect_combo=False,
        mods=[Mod(acronym="HD"), Mod(acronym="DT")],
    )
    values.update(score_fields)
    stats = statistics if statistics is not None else HitStatistics(great=500, ok=10, meh=0, miss=1, slider_tail_hit=410)
    return ScoreLookup(
        score=RawScoreRecord(statistics=stats, **values),
        beatmap=beatmap if beatmap is not None else make_beatmap(),
        user=user or RawUserRecord(
            username="mrekk",
            avatar_url="https://a.ppy.sh/7562902?1.jpeg",
            country_code="AU",
            global_rank=1,
        ),
    )


@pytest.fixture
def measurer():
    """Every character is 10px wide, whatever the font."""
    return FixedWidthMeasurer(char_width=10)


@pytest.fixture
def ramp():
    return GradientRamp.default()


@pytest.fixture
def proxy():
    return ImageProxy()


@pytest.fixture
def lookup():
    return make_lookup()


@pytest.fixture
def preview():
    return BeatmapPreview(beatmap=make_beatmap(status=RankedStatus.LOVED))
