"""osu! Scorecard MCP Server.

FastMCP server exposing score/beatmap lookup, scorecard composition, the
image proxy and the scorecard counter.
Run: osu-scorecard-mcp
"""

from __future__ import annotations

import base64
import logging
import os
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .core.assembler import compose_scorecard
from .core.clients.images import ImageProxy
from .core.clients.osu import OsuApiClient
from .core.errors import UpstreamError
from .core.gradient import GradientRamp, load_gradient_ramp
from .core.layout import PillowTextMeasurer
from .core.models import ImageKind, OverrideSet, ScorecardSource
from .counters import get_scorecard_count, increment_scorecard_count
from .db import Database

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)
COUNTER_WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=False)

db = Database()
proxy = ImageProxy()


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize the counter database and warm the gradient ramp."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await db.init()
    _get_ramp()
    try:
        yield
    finally:
        await db.close()


mcp = FastMCP(
    "osu! Scorecard",
    instructions="Generate shareable osu! scorecards from a score ID or beatmap ID, with optional overrides for any displayed value.",
    lifespan=lifespan,
)


@lru_cache(maxsize=1)
def _get_client() -> OsuApiClient:
    client_id = os.environ.get("OSU_CLIENT_ID", "")
    client_secret = os.environ.get("OSU_CLIENT_SECRET", "")
    if not client_id or not client_secret:
        raise ValueError(
            "OSU_CLIENT_ID and OSU_CLIENT_SECRET environment variables are required. "
            "Register an OAuth application at https://osu.ppy.sh/home/account/edit#oauth"
        )
    return OsuApiClient(client_id, client_secret)


@lru_cache(maxsize=1)
def _get_ramp() -> Optional[GradientRamp]:
    return load_gradient_ramp()


@lru_cache(maxsize=1)
def _get_measurer() -> PillowTextMeasurer:
    return PillowTextMeasurer()


def _compose(source: ScorecardSource, overrides: Optional[OverrideSet]) -> dict:
    layout = compose_scorecard(
        source,
        overrides or OverrideSet(),
        measurer=_get_measurer(),
        proxy=proxy,
        ramp=_get_ramp(),
    )
    return layout.model_dump(mode="json")


def _error(exc: UpstreamError, what: str) -> dict:
    logger.error("Error fetching %s: %s", what, exc)
    return {"error": f"Failed to fetch {what}", "detail": str(exc)}


# ─── Lookups ─────────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def osu_score(score_id: str) -> dict:
    """Fetch an osu! score with its beatmap and player, as used for scorecards.

    Args:
        score_id: osu! score ID.
    """
    try:
        lookup = await _get_client().fetch_score(score_id)
    except UpstreamError as exc:
        return _error(exc, "score data")
    return lookup.model_dump(mode="json")


@mcp.tool(annotations=READ_ONLY)
async def osu_map(map_id: str) -> dict:
    """Fetch an osu! beatmap (difficulty) for a score-less preview.

    Args:
        map_id: osu! beatmap ID.
    """
    try:
        preview = await _get_client().fetch_beatmap(map_id)
    except UpstreamError as exc:
        return _error(exc, "map data")
    return preview.model_dump(mode="json")


# ─── Scorecards ──────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def scorecard_from_score(score_id: str, overrides: Optional[OverrideSet] = None) -> dict:
    """Compose the scorecard layout for a submitted score.

    Args:
        score_id: osu! score ID.
        overrides: Optional replacements for displayed values. Empty fields keep
                   the upstream value; malformed values are ignored.
    """
    try:
        lookup = await _get_client().fetch_score(score_id)
    except UpstreamError as exc:
        return _error(exc, "score data")
    return _compose(lookup, overrides)


@mcp.tool(annotations=READ_ONLY)
async def scorecard_from_map(map_id: str, overrides: Optional[OverrideSet] = None) -> dict:
    """Compose a preview scorecard for a beatmap with no score yet.

    Hit counts start at zero and the player is shown as a guest; fill in
    overrides to build the card you want.

    Args:
        map_id: osu! beatmap ID.
        overrides: Optional values for the card.
    """
    try:
        preview = await _get_client().fetch_beatmap(map_id)
    except UpstreamError as exc:
        return _error(exc, "map data")
    return _compose(preview, overrides)


@mcp.tool(annotations=READ_ONLY)
async def proxy_image(kind: str, url: str) -> dict:
    """Fetch an avatar or background image. Failures return a transparent 1x1 PNG.

    Args:
        kind: 'avatar' or 'background'.
        url: Source image URL.
    """
    if kind not in {k.value for k in ImageKind}:
        return {"error": "Invalid image type"}
    image = await proxy.fetch(kind, url)
    return {
        "content_type": image.content_type,
        "cache_control": image.cache_control,
        "fallback": image.fallback,
        "data_base64": base64.b64encode(image.data).decode("ascii"),
    }


# ─── Counter ─────────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def scorecard_count() -> dict:
    """How many scorecards have been generated."""
    return {"count": await get_scorecard_count(db)}


@mcp.tool(annotations=COUNTER_WRITE)
async def record_scorecard_export() -> dict:
    """Count one more generated scorecard."""
    count = await increment_scorecard_count(db)
    return {"success": True, "count": count}


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
