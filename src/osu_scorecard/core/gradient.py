"""Star-rating color ramp.

The ramp is a sorted list of (position, rgb) samples over [0, 1], loaded once
at startup. Lookups interpolate between neighbouring samples, so no drawing
surface is needed at runtime.
"""

from __future__ import annotations

import bisect
import logging
import math
import os
from pathlib import Path
from typing import Optional, Sequence

from PIL import Image

logger = logging.getLogger(__name__)

MAX_STAR_RATING = 10.0
RAMP_SAMPLE_COUNT = 256

# osu! difficulty spectrum, star rating stop -> color
STAR_RATING_SPECTRUM: list[tuple[float, str]] = [
    (0.0, "#4290fb"),
    (1.25, "#4fc0ff"),
    (2.0, "#4fffd5"),
    (2.5, "#7cff4f"),
    (3.3, "#f6f05c"),
    (4.2, "#ff8068"),
    (4.9, "#ff4e6f"),
    (5.8, "#c645b8"),
    (6.7, "#6563de"),
    (7.7, "#18158e"),
    (9.0, "#000000"),
    (10.0, "#000000"),
]

# Used when no ramp could be loaded, keyed by floor(star rating)
FALLBACK_COLORS: dict[int, str] = {
    0: "#666666", 1: "#4fc3f7", 2: "#4caf50", 3: "#ffeb3b",
    4: "#ff9800", 5: "#ff5722", 6: "#e91e63", 7: "#9c27b0",
    8: "#673ab7", 9: "#3f51b5", 10: "#000000",
}
SENTINEL_COLOR = "#ff6b6b"

RGB = tuple[int, int, int]


def hex_to_rgb(value: str) -> RGB:
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def rgb_to_hex(rgb: Sequence[int]) -> str:
    return "#" + "".join(f"{channel:02x}" for channel in rgb[:3])


class GradientRamp:
    """Precomputed (position, color) samples over the unit interval."""

    def __init__(self, samples: Sequence[tuple[float, RGB]]):
        if len(samples) < 2:
            raise ValueError("A gradient ramp needs at least two samples")
        ordered = sorted(samples, key=lambda s: s[0])
        self._positions = [p for p, _ in ordered]
        self._colors = [tuple(c) for _, c in ordered]

    def __len__(self) -> int:
        return len(self._positions)

    @classmethod
    def from_stops(cls, stops: Sequence[tuple[float, str]], domain: float = MAX_STAR_RATING) -> GradientRamp:
        """Build a ramp from hex color stops expressed in star-rating units."""
        return cls([(value / domain, hex_to_rgb(color)) for value, color in stops])

    @classmethod
    def default(cls) -> GradientRamp:
        return cls.from_stops(STAR_RATING_SPECTRUM)

    @classmethod
    def from_image(cls, path: str | Path, samples: int = RAMP_SAMPLE_COUNT) -> GradientRamp:
        """Sample a horizontal gradient image along its middle row."""
        with Image.open(path) as img:
            rgb = img.convert("RGB")
            width, height = rgb.size
            y = height // 2
            count = max(2, min(samples, width))
            points = []
            for i in range(count):
                position = i / (count - 1)
                x = math.floor(position * (width - 1))
                points.append((position, rgb.getpixel((x, y))))
        logger.info("Loaded gradient ramp from %s (%d samples)", path, len(points))
        return cls(points)

    def sample(self, position: float) -> str:
        """Interpolated hex color at a position in [0, 1]; clamps outside it."""
        position = max(self._positions[0], min(self._positions[-1], position))
        idx = bisect.bisect_right(self._positions, position)
        if idx >= len(self._positions):
            return rgb_to_hex(self._colors[-1])
        lo, hi = idx - 1, idx
        span = self._positions[hi] - self._positions[lo]
        t = 0.0 if span == 0 else (position - self._positions[lo]) / span
        mixed = [
            round(a + (b - a) * t)
            for a, b in zip(self._colors[lo], self._colors[hi])
        ]
        return rgb_to_hex(mixed)


def load_gradient_ramp(path: Optional[str] = None) -> Optional[GradientRamp]:
    """Load the ramp configured for this process.

    Reads SCORECARD_GRADIENT_PATH when no path is given and falls back to the
    builtin spectrum. Returns None if a configured image cannot be read, in
    which case color lookups use the discrete fallback table.
    """
    path = path or os.environ.get("SCORECARD_GRADIENT_PATH", "")
    if not path:
        return GradientRamp.default()
    try:
        return GradientRamp.from_image(path)
    except (OSError, ValueError) as exc:
        logger.warning("Could not load gradient %s, using fallback colors: %s", path, exc)
        return None


def star_color(star_rating: float, ramp: Optional[GradientRamp]) -> str:
    """Color for a star rating, sampled from the ramp at rating / 10."""
    if ramp is None:
        if math.isnan(star_rating) or star_rating < 0:
            return SENTINEL_COLOR
        index = math.floor(min(star_rating, MAX_STAR_RATING))
        return FALLBACK_COLORS.get(index, SENTINEL_COLOR)
    clamped = max(0.0, min(MAX_STAR_RATING, star_rating))
    return ramp.sample(clamped / MAX_STAR_RATING)
