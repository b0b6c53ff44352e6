"""Tests for the MCP tool functions that need no network."""

import asyncio

import pytest

from osu_scorecard import server


class TestServer:
    def test_invalid_image_kind(self):
        assert asyncio.run(server.proxy_image("banner", "https://x.test/a.png")) == {"error": "Invalid image type"}

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("OSU_CLIENT_ID", raising=False)
        monkeypatch.delenv("OSU_CLIENT_SECRET", raising=False)
        server._get_client.cache_clear()
        with pytest.raises(ValueError, match="OSU_CLIENT_ID"):
            server._get_client()

    def test_compose_returns_json(self, lookup):
        data = server._compose(lookup, None)
        assert data["source"] == "score"
        assert data["presentation"]["score_text"] == "987,654"
        assert data["background"]["kind"] == "background"
