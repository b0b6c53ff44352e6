"""osu! API v2 client.

API docs: https://osu.ppy.sh/docs/
Uses the client-credentials grant with the 'public' scope. An expired token
is refreshed once per request on a 401; nothing else is retried.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..errors import NotFoundError, UpstreamError
from ..models import (
    BeatmapPreview,
    HitStatistics,
    Mod,
    RankedStatus,
    RawBeatmapRecord,
    RawScoreRecord,
    RawUserRecord,
    ScoreLookup,
)
from ..normalizer import detect_scoring_mode

logger = logging.getLogger(__name__)

API_BASE = "https://osu.ppy.sh/api/v2"
TOKEN_URL = "https://osu.ppy.sh/oauth/token"
ASSETS_BASE = "https://assets.ppy.sh/beatmaps"
API_VERSION = "20220705"
USER_AGENT = "osu-scorecard-generator/1.0"


class OsuApiClient:
    """Fetches scores, beatmaps and users for scorecards."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self._transport = transport
        self._access_token: Optional[str] = None

    def _client(self, timeout: float = 30.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=self._transport,
        )

    async def get_access_token(self) -> str:
        """Request a fresh client-credentials token and cache it."""
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "client_credentials",
            "scope": "public",
        }
        try:
            async with self._client(timeout=20.0) as client:
                response = await client.post(TOKEN_URL, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.error("Error getting access token: %s", exc)
            raise UpstreamError(f"Could not authenticate with the osu! API: {exc}") from exc

        if not isinstance(data, dict) or not data.get("access_token"):
            logger.error("Token response carried no access_token")
            raise UpstreamError("Could not authenticate with the osu! API: no access token returned")
        self._access_token = data["access_token"]
        return self._access_token

    async def request(self, endpoint: str) -> dict:
        """GET an API endpoint, refreshing the token once if it was rejected."""
        if not self._access_token:
            await self.get_access_token()

        try:
            response = await self._get(endpoint)
            if response.status_code == 401:
                logger.info("Access token rejected, requesting a new one")
                await self.get_access_token()
                response = await self._get(endpoint)
            if response.status_code == 404:
                raise NotFoundError(f"Not found: {endpoint}")
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamError(f"osu! API request {endpoint} failed: {exc}") from exc

    async def _get(self, endpoint: str) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-version": API_VERSION,
        }
        async with self._client() as client:
            return await client.get(f"{API_BASE}{endpoint}", headers=headers)

    async def resolve_cover_url(self, beatmapset: dict) -> str:
        """Prefer the full-resolution raw background when it exists."""
        fallback = (beatmapset.get("covers") or {}).get("list@2x", "")
        beatmapset_id = beatmapset.get("id")
        if not beatmapset_id:
            return fallback

        raw_url = f"{ASSETS_BASE}/{beatmapset_id}/covers/raw.jpg"
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.head(raw_url, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as exc:
            logger.info("Raw image not available, using fallback: %s", exc)
            return fallback

        if response.status_code == 200:
            logger.info("Using HD raw background: %s", raw_url)
            return raw_url
        logger.info("Raw image returned status %d, using fallback", response.status_code)
        return fallback

    async def fetch_user_rank(self, user_id: int) -> Optional[int]:
        user = await self.request(f"/users/{user_id}/osu")
        return (user.get("statistics") or {}).get("global_rank")

    async def fetch_score(self, score_id: int | str) -> ScoreLookup:
        """Fetch a score with its beatmap and player."""
        data = await self.request(f"/scores/{score_id}")
        user = data.get("user") or {}
        user_rank = await self.fetch_user_rank(user["id"]) if user.get("id") else None
        beatmapset = data.get("beatmapset") or {}
        cover = await self.resolve_cover_url(beatmapset)

        try:
            lookup = ScoreLookup(
                score=parse_score(data),
                beatmap=parse_beatmap(data.get("beatmap") or {}, beatmapset, cover),
                user=RawUserRecord(
                    username=user.get("username") or "",
                    avatar_url=user.get("avatar_url") or "",
                    country_code=user.get("country_code") or "",
                    global_rank=user_rank,
                ),
            )
        except ValidationError as exc:
            raise UpstreamError(f"Unexpected score payload for {score_id}: {exc}") from exc
        logger.info(
            "Score detection: score_id=%s legacy_score_id=%s has_replay=%s total_score=%s "
            "classic_total_score=%s mode=%s",
            score_id,
            lookup.score.legacy_score_id,
            lookup.score.has_replay,
            lookup.score.total_score,
            lookup.score.classic_total_score,
            detect_scoring_mode(lookup.score).value,
        )
        return lookup

    async def fetch_beatmap(self, map_id: int | str) -> BeatmapPreview:
        """Fetch a beatmap for a score-less preview."""
        data = await self.request(f"/beatmaps/{map_id}")
        beatmapset = data.get("beatmapset") or {}
        cover = await self.resolve_cover_url(beatmapset)
        try:
            return BeatmapPreview(beatmap=parse_beatmap(data, beatmapset, cover))
        except ValidationError as exc:
            raise UpstreamError(f"Unexpected beatmap payload for {map_id}: {exc}") from exc


def parse_score(data: dict) -> RawScoreRecord:
    """Map an API score payload onto a RawScoreRecord."""
    stats = data.get("statistics") or {}
    beatmap = data.get("beatmap") or {}
    return RawScoreRecord(
        id=data.get("id"),
        legacy_score_id=data.get("legacy_score_id"),
        has_replay=data.get("has_replay"),
        total_score=data.get("total_score"),
        classic_total_score=data.get("classic_total_score"),
        statistics=HitStatistics(
            great=stats.get("great"),
            ok=stats.get("ok"),
            meh=stats.get("meh"),
            miss=stats.get("miss"),
            slider_tail_hit=stats.get("slider_tail_hit"),
        ),
        count_sliders=beatmap.get("count_sliders"),
        rank=data.get("rank"),
        accuracy=data.get("accuracy"),
        max_combo=data.get("max_combo"),
        pp=data.get("pp"),
        rank_global=data.get("rank_global"),
        is_perfect_combo=data.get("is_perfect_combo"),
        mods=_parse_mods(data.get("mods") or []),
        ended_at=data.get("ended_at"),
    )


def _parse_mods(mods: list) -> list[Mod]:
    """API mods are objects with an acronym; older payloads use bare strings."""
    parsed = []
    for mod in mods:
        acronym = mod if isinstance(mod, str) else (mod or {}).get("acronym")
        if acronym:
            parsed.append(Mod(acronym=acronym))
    return parsed


def parse_beatmap(beatmap: dict, beatmapset: dict, cover: str = "") -> RawBeatmapRecord:
    return RawBeatmapRecord(
        id=beatmapset.get("id"),
        title=beatmapset.get("title") or "",
        difficulty=beatmap.get("version") or "",
        star_rating=beatmap.get("difficulty_rating") or 0.0,
        cover=cover,
        creator=beatmapset.get("creator") or "",
        status=RankedStatus(beatmapset.get("status") or "unknown"),
    )
