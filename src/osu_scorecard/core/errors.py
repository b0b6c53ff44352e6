"""Exception taxonomy for scorecard generation."""

from __future__ import annotations


class ScorecardError(Exception):
    """Base class for all scorecard errors."""


class UpstreamError(ScorecardError):
    """An osu! API request failed. Surfaced to the user; no layout is produced."""


class NotFoundError(UpstreamError):
    """The requested score, beatmap or user does not exist upstream."""


class OverrideValidationError(ScorecardError, ValueError):
    """An override value could not be parsed.

    Never escapes the normalizer: the field falls back to the upstream value.
    """

    def __init__(self, field: str, value: object, reason: str = "invalid value"):
        self.field = field
        self.value = value
        super().__init__(f"{field}={value!r}: {reason}")


class RenderError(ScorecardError):
    """Exporting a layout to an image failed. The previous layout stays visible."""
