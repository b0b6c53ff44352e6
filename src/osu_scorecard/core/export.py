"""Export a layout through the external renderer.

Images are preloaded with a bounded wait; any that fail or time out are left
out and rendering continues with whatever loaded. Nothing is retried.
Called by ScorecardSession.export; the renderer itself belongs to the
embedding UI.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel

from .errors import RenderError
from .models import ImageKind, ImageRef, ScorecardLayout

logger = logging.getLogger(__name__)

IMAGE_LOAD_TIMEOUT_SECONDS = 5.0

ImageLoader = Callable[[ImageKind, str], Awaitable[bytes]]


class Renderer(Protocol):
    async def render(self, layout: ScorecardLayout, images: dict[ImageKind, bytes]) -> bytes:
        """Rasterize a layout to PNG bytes."""
        ...


class ExportResult(BaseModel):
    filename: str
    data: bytes
    missing_images: list[ImageKind] = []


def export_filename(layout: ScorecardLayout, now_ms: Optional[int] = None) -> str:
    """scorecard_<username>_<last 6 digits of the ms timestamp>.png"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    username = layout.user.username if layout.source == "score" else "guest"
    return f"scorecard_{username}_{str(now_ms)[-6:]}.png"


async def _load(loader: ImageLoader, image: ImageRef, timeout: float) -> Optional[bytes]:
    if not image.source_url:
        return None
    try:
        return await asyncio.wait_for(loader(image.kind, image.source_url), timeout)
    except asyncio.TimeoutError:
        logger.warning("Image load timeout: %s", image.reference)
    except Exception as exc:
        logger.warning("Image failed to load: %s (%s)", image.reference, exc)
    return None


async def preload_images(
    layout: ScorecardLayout,
    loader: ImageLoader,
    timeout: float = IMAGE_LOAD_TIMEOUT_SECONDS,
) -> dict[ImageKind, bytes]:
    """Load every image the layout references, skipping failures."""
    refs = [layout.background, layout.avatar]
    results = await asyncio.gather(*(_load(loader, ref, timeout) for ref in refs))
    return {ref.kind: data for ref, data in zip(refs, results) if data is not None}


async def export_scorecard(
    layout: ScorecardLayout,
    renderer: Renderer,
    loader: ImageLoader,
    timeout: float = IMAGE_LOAD_TIMEOUT_SECONDS,
) -> ExportResult:
    """Render a layout to a downloadable PNG."""
    images = await preload_images(layout, loader, timeout)
    missing = [ref.kind for ref in (layout.background, layout.avatar) if ref.kind not in images]
    try:
        data = await renderer.render(layout, images)
    except Exception as exc:
        logger.error("Error rendering scorecard: %s", exc, exc_info=True)
        raise RenderError(f"Error saving PNG: {exc}") from exc
    return ExportResult(filename=export_filename(layout), data=data, missing_images=missing)
