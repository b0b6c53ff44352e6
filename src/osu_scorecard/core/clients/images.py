"""Image proxy for avatars and beatmap backgrounds.

Scorecards reference images through the proxy route so the renderer can load
them same-origin. Fetch failures never propagate: callers get a 1x1
transparent PNG instead.
"""

from __future__ import annotations

import base64
import logging
from typing import Optional
from urllib.parse import quote, unquote

import httpx
from pydantic import BaseModel

from ..errors import UpstreamError
from ..models import ImageKind

logger = logging.getLogger(__name__)

PROXY_ROUTE = "/api/proxy-image"
USER_AGENT = "osu-scorecard-generator/1.0"

TRANSPARENT_PNG = bytes([
    0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A, 0x00, 0x00, 0x00, 0x0D,
    0x49, 0x48, 0x44, 0x52, 0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01,
    0x08, 0x06, 0x00, 0x00, 0x00, 0x1F, 0x15, 0xC4, 0x89, 0x00, 0x00, 0x00,
    0x0B, 0x49, 0x44, 0x41, 0x54, 0x78, 0x9C, 0x63, 0x00, 0x01, 0x00, 0x00,
    0x05, 0x00, 0x01, 0x0D, 0x0A, 0x2D, 0xB4, 0x00, 0x00, 0x00, 0x00, 0x49,
    0x45, 0x4E, 0x44, 0xAE, 0x42, 0x60, 0x82,
])
TRANSPARENT_PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(TRANSPARENT_PNG).decode("ascii")


class ProxiedImage(BaseModel):
    """Image bytes plus the response headers the proxy route should send."""

    content_type: str
    data: bytes
    cache_control: str
    fallback: bool = False


class ImageProxy:
    """Builds proxied image references and fetches the images behind them."""

    def __init__(
        self,
        route: str = PROXY_ROUTE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.route = route.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def reference(self, kind: ImageKind, url: str) -> str:
        """Stable URL for the renderer; the placeholder when there is no source."""
        if not url:
            return TRANSPARENT_PNG_DATA_URI
        return f"{self.route}/{ImageKind(kind).value}?url={quote(url, safe='')}"

    async def fetch(self, kind: ImageKind | str, url: str) -> ProxiedImage:
        """Fetch an upstream image, or the transparent placeholder on any failure."""
        try:
            kind = ImageKind(kind)
            if not url:
                raise ValueError("No URL provided")
            decoded = unquote(url)
            logger.info("Proxying %s image: %s", kind.value, decoded)

            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=5.0),
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(decoded, headers={"User-Agent": USER_AGENT})
                response.raise_for_status()

            return ProxiedImage(
                content_type=response.headers.get("content-type", "image/jpeg"),
                data=response.content,
                cache_control="public, max-age=3600",
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning("Error proxying %s image %s: %s", kind, url, exc)
            return placeholder_image()

    async def load(self, kind: ImageKind, url: str) -> bytes:
        """Image bytes only; usable as the exporter's image loader.

        Raises UpstreamError instead of returning the placeholder so the
        exporter can report the image as missing.
        """
        image = await self.fetch(kind, url)
        if image.fallback:
            raise UpstreamError(f"Could not load image: {url}")
        return image.data


def placeholder_image() -> ProxiedImage:
    return ProxiedImage(
        content_type="image/png",
        data=TRANSPARENT_PNG,
        cache_control="no-cache",
        fallback=True,
    )
