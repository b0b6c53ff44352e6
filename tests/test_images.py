"""Tests for the image proxy."""

import asyncio

import httpx
import pytest

from osu_scorecard.core.clients.images import (
    TRANSPARENT_PNG,
    TRANSPARENT_PNG_DATA_URI,
    ImageProxy,
)
from osu_scorecard.core.errors import UpstreamError
from osu_scorecard.core.models import ImageKind


def proxy_for(handler) -> ImageProxy:
    return ImageProxy(transport=httpx.MockTransport(handler))


class TestReference:
    def test_url_is_encoded(self, proxy):
        ref = proxy.reference(ImageKind.AVATAR, "https://a.ppy.sh/1?2.jpeg")
        assert ref == "/api/proxy-image/avatar?url=https%3A%2F%2Fa.ppy.sh%2F1%3F2.jpeg"

    def test_empty_url_is_placeholder(self, proxy):
        assert proxy.reference(ImageKind.BACKGROUND, "") == TRANSPARENT_PNG_DATA_URI

    def test_custom_route(self):
        ref = ImageProxy(route="/img/").reference(ImageKind.BACKGROUND, "https://x.test/a.jpg")
        assert ref.startswith("/img/background?url=")


class TestFetch:
    def test_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["agent"] = request.headers["user-agent"]
            return httpx.Response(200, content=b"JPEGDATA", headers={"content-type": "image/jpeg"})

        image = asyncio.run(proxy_for(handler).fetch(ImageKind.BACKGROUND, "https%3A%2F%2Fx.test%2Fbg.jpg"))
        assert seen["url"] == "https://x.test/bg.jpg"
        assert seen["agent"].startswith("osu-scorecard-generator")
        assert image.data == b"JPEGDATA"
        assert image.content_type == "image/jpeg"
        assert image.cache_control == "public, max-age=3600"
        assert image.fallback is False

    def test_upstream_error_returns_placeholder(self):
        proxy = proxy_for(lambda request: httpx.Response(404))
        image = asyncio.run(proxy.fetch(ImageKind.AVATAR, "https://x.test/missing.png"))
        assert image.fallback is True
        assert image.data == TRANSPARENT_PNG
        assert image.content_type == "image/png"

    def test_network_error_returns_placeholder(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        image = asyncio.run(proxy_for(handler).fetch(ImageKind.AVATAR, "https://x.test/a.png"))
        assert image.fallback is True

    def test_invalid_kind_returns_placeholder(self):
        proxy = proxy_for(lambda request: httpx.Response(200, content=b"x"))
        image = asyncio.run(proxy.fetch("banner", "https://x.test/a.png"))
        assert image.fallback is True

    def test_missing_url_returns_placeholder(self, proxy):
        assert asyncio.run(proxy.fetch(ImageKind.AVATAR, "")).fallback is True

    def test_load_returns_bytes(self):
        proxy = proxy_for(lambda request: httpx.Response(200, content=b"PNG"))
        assert asyncio.run(proxy.load(ImageKind.AVATAR, "https://x.test/a.png")) == b"PNG"

    def test_malformed_url_returns_placeholder(self):
        proxy = proxy_for(lambda request: httpx.Response(200, content=b"x"))
        image = asyncio.run(proxy.fetch(ImageKind.AVATAR, "http://[::1/a.png"))
        assert image.fallback is True
        assert image.data == TRANSPARENT_PNG

    def test_load_raises_when_image_unavailable(self):
        proxy = proxy_for(lambda request: httpx.Response(404))
        with pytest.raises(UpstreamError):
            asyncio.run(proxy.load(ImageKind.AVATAR, "https://x.test/missing.png"))
