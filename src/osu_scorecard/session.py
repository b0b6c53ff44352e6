"""Interactive editing session.

Holds the state of one scorecard editor: the fetched record, the current
overrides and the displayed layout. Edits are debounced so bursts of input
produce a single recompute. Timers are plain asyncio tasks.

Fetches are tagged with a request token; a completion whose token is no
longer the latest is dropped, so an older fetch can never overwrite the
result of a newer one.

This is the controller for an embedding editor UI, which supplies the
Renderer that rasterizes layouts. The MCP server is stateless per call and
does not use it; an embedder wires it up like:

    session = ScorecardSession(OsuApiClient(id, secret), PillowTextMeasurer(), ImageProxy())
    session.request_score("123456")
    await session.flush()
    result = await session.export(renderer, session.proxy.load)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from .core.assembler import ImageReferencer, compose_scorecard
from .core.clients.osu import OsuApiClient
from .core.errors import RenderError, UpstreamError
from .core.export import ExportResult, ImageLoader, Renderer, export_scorecard
from .core.gradient import GradientRamp
from .core.layout import TextMeasurer
from .core.models import OverrideSet, ScorecardLayout, ScorecardSource

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300
LOOKUP_DEBOUNCE_MS = 500


class AppState(BaseModel):
    """Everything the editor currently displays."""

    record: Optional[ScorecardSource] = None
    overrides: OverrideSet = OverrideSet()
    layout: Optional[ScorecardLayout] = None
    status: str = ""
    status_kind: str = ""


class ScorecardSession:
    """Owns the application state and schedules recomputes for one editor."""

    def __init__(
        self,
        client: OsuApiClient,
        measurer: TextMeasurer,
        proxy: ImageReferencer,
        ramp: Optional[GradientRamp] = None,
        debounce_seconds: Optional[float] = None,
        lookup_debounce_seconds: float = LOOKUP_DEBOUNCE_MS / 1000,
    ):
        self.client = client
        self.measurer = measurer
        self.proxy = proxy
        self.ramp = ramp
        self.state = AppState()
        if debounce_seconds is None:
            debounce_seconds = int(os.environ.get("SCORECARD_DEBOUNCE_MS", str(DEFAULT_DEBOUNCE_MS))) / 1000
        self.debounce_seconds = debounce_seconds
        self.lookup_debounce_seconds = lookup_debounce_seconds
        self.recompute_count = 0
        self._pending: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._latest_request = 0

    def _set_status(self, message: str, kind: str) -> None:
        self.state.status = message
        self.state.status_kind = kind

    # ─── Debouncing ──────────────────────────────────────────────────────

    def _debounce(self, action: Callable[[], Awaitable[None]], delay: float) -> asyncio.Task:
        """Replace any still-waiting action with this one, run after delay.

        Once the delay has elapsed the action is no longer cancellable by new
        input; a fetch already in flight finishes and is filtered by its token.
        """
        if self._pending and not self._pending.done():
            self._pending.cancel()

        async def run():
            await asyncio.sleep(delay)
            if self._pending is asyncio.current_task():
                self._pending = None
            await action()

        task = asyncio.create_task(run())
        self._pending = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def submit(self, overrides: OverrideSet) -> Optional[asyncio.Task]:
        """Record an edit and schedule a recompute once input settles."""
        self.state.overrides = overrides
        if self.state.record is None:
            return None

        async def action():
            self.recompute()

        return self._debounce(action, self.debounce_seconds)

    def request_score(self, score_id: str) -> Optional[asyncio.Task]:
        score_id = score_id.strip()
        if not score_id:
            return None
        return self._debounce(lambda: self.load_score(score_id), self.lookup_debounce_seconds)

    def request_map(self, map_id: str) -> Optional[asyncio.Task]:
        map_id = map_id.strip()
        if not map_id:
            return None
        return self._debounce(lambda: self.load_map(map_id), self.lookup_debounce_seconds)

    async def flush(self) -> None:
        """Wait until every scheduled action has run or been superseded."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel everything still scheduled or running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending = None

    # ─── Fetching ────────────────────────────────────────────────────────

    def _next_request(self) -> int:
        self._latest_request += 1
        return self._latest_request

    def _is_stale(self, token: int) -> bool:
        return token != self._latest_request

    async def load_score(self, score_id: str) -> None:
        await self._load(lambda: self.client.fetch_score(score_id), "score", score_id)

    async def load_map(self, map_id: str) -> None:
        await self._load(lambda: self.client.fetch_beatmap(map_id), "map", map_id)

    async def _load(self, fetch: Callable[[], Awaitable[ScorecardSource]], label: str, ident: str) -> None:
        token = self._next_request()
        self._set_status(f"Loading {label} data...", "loading")
        try:
            record = await fetch()
        except UpstreamError as exc:
            if self._is_stale(token):
                return
            logger.error("Error fetching %s %s: %s", label, ident, exc)
            self.state.record = None
            self.state.layout = None
            self._set_status(f"Error: {exc}", "error")
            return

        if self._is_stale(token):
            logger.debug("Discarding stale %s %s result", label, ident)
            return
        self.state.record = record
        self.recompute()
        self._set_status(f"{label.capitalize()} loaded successfully!", "success")

    # ─── Recompute & export ──────────────────────────────────────────────

    def recompute(self) -> Optional[ScorecardLayout]:
        """Rebuild the layout from the current record and overrides."""
        if self.state.record is None:
            return None
        self.state.layout = compose_scorecard(
            self.state.record,
            self.state.overrides,
            measurer=self.measurer,
            proxy=self.proxy,
            ramp=self.ramp,
        )
        self.recompute_count += 1
        return self.state.layout

    async def export(self, renderer: Renderer, loader: ImageLoader) -> Optional[ExportResult]:
        """Render the displayed layout; on failure the layout stays as it was."""
        if self.state.layout is None:
            self._set_status("No scorecard to save", "error")
            return None
        self._set_status("Generating PNG...", "loading")
        try:
            result = await export_scorecard(self.state.layout, renderer, loader)
        except RenderError as exc:
            self._set_status(str(exc), "error")
            return None
        self._set_status("PNG saved successfully!", "success")
        return result
