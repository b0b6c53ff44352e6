"""Scorecard assembler — composes the pipeline into one layout description.

raw record -> normalizer -> presentation -> layout fitter -> ScorecardLayout.
Images are referenced through the proxy, never fetched here.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .gradient import GradientRamp
from .layout import CARD_WIDTH, TextMeasurer, fit_layout
from .models import (
    CanonicalScore,
    CanonicalUser,
    ImageKind,
    ImageRef,
    LayoutPlan,
    OverrideSet,
    PresentationModel,
    RawBeatmapRecord,
    ScoreLookup,
    ScorecardLayout,
    ScorecardSource,
)
from .normalizer import normalize, normalize_user
from .presentation import build_presentation

logger = logging.getLogger(__name__)


class ImageReferencer(Protocol):
    def reference(self, kind: ImageKind, url: str) -> str:
        ...


def _image(proxy: ImageReferencer, kind: ImageKind, url: str) -> ImageRef:
    return ImageRef(kind=kind, source_url=url, reference=proxy.reference(kind, url))


def assemble_scorecard(
    score: CanonicalScore,
    user: CanonicalUser,
    beatmap: RawBeatmapRecord,
    presentation: PresentationModel,
    plan: LayoutPlan,
    proxy: ImageReferencer,
    background_url: Optional[str] = None,
    score_backed: bool = True,
) -> ScorecardLayout:
    """Combine the derived models into the layout handed to the renderer."""
    background_source = (background_url or "").strip() or beatmap.cover
    return ScorecardLayout(
        source="score" if score_backed else "map",
        score=score,
        user=user,
        presentation=presentation,
        plan=plan,
        beatmap_title=beatmap.title,
        creator=beatmap.creator,
        background=_image(proxy, ImageKind.BACKGROUND, background_source),
        avatar=_image(proxy, ImageKind.AVATAR, user.avatar_url),
        width=CARD_WIDTH,
    )


def compose_scorecard(
    source: ScorecardSource,
    overrides: OverrideSet,
    *,
    measurer: TextMeasurer,
    proxy: ImageReferencer,
    ramp: Optional[GradientRamp] = None,
) -> ScorecardLayout:
    """Run the whole pipeline for a fetched score or beatmap preview."""
    score_backed = isinstance(source, ScoreLookup)
    beatmap = source.beatmap

    score = normalize(source, overrides)
    user = normalize_user(source, overrides)
    presentation = build_presentation(score, beatmap, user, overrides, ramp, score_backed=score_backed)
    plan = fit_layout(beatmap.title, presentation, measurer)

    logger.debug(
        "Composed %s scorecard: mode=%s score=%s height=%d",
        "score" if score_backed else "map",
        score.scoring_mode.value,
        presentation.score_text,
        plan.height,
    )
    return assemble_scorecard(
        score,
        user,
        beatmap,
        presentation,
        plan,
        proxy,
        background_url=overrides.background_url,
        score_backed=score_backed,
    )
