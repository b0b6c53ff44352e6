"""Layout fitting — title truncation, size classes and card height.

Text width comes from an injected TextMeasurer so the same rules run against
real fonts (Pillow) or a deterministic fixed-width stand-in. All functions are
pure and idempotent: fitting an already fitted result changes nothing.
"""

from __future__ import annotations

import logging
import math
import os
from typing import Optional, Protocol, Sequence

from PIL import ImageFont
from pydantic import BaseModel, ConfigDict

from .models import HitStat, LayoutPlan, PresentationModel

logger = logging.getLogger(__name__)


class FontSpec(BaseModel):
    """Font used to measure a text region."""

    model_config = ConfigDict(frozen=True)

    family: str = "Fredoka"
    size: int
    weight: int = 400

    def css(self) -> str:
        return f"{self.weight} {self.size}px '{self.family}'"


class TextMeasurer(Protocol):
    def measure(self, text: str, font: FontSpec) -> int:
        """Rendered width of text in pixels, rounded up."""
        ...


CARD_WIDTH = 800
CARD_BASE_HEIGHT = 600
HORIZONTAL_PADDING = 40
MOD_ICON_WIDTH = 70
MOD_ICON_SPACING = 20
MIN_TITLE_WIDTH = 200
MIN_TITLE_LENGTH = 5
ELLIPSIS = ".."

TITLE_FONT = FontSpec(size=35, weight=600)
SCORE_FONT = FontSpec(size=28, weight=500)
STAT_FONT = FontSpec(size=20, weight=500)
STAT_CELL_GAP = 24
MIN_LEFT_SECTION_WIDTH = 360
SECTION_MARGIN = 50

# (size class, minimum available width), largest first
PP_SIZE_CLASSES: list[tuple[str, int]] = [
    ("size-large", 300),
    ("size-medium", 250),
    ("size-small", 200),
    ("size-tiny", 150),
]
FULL_COMBO_SIZE_CLASSES: list[tuple[str, int]] = [
    ("size-large", 250),
    ("size-medium", 200),
    ("size-small", 150),
]

EXTRA_LINE_HEIGHT = 30
FREE_EXTRA_LINES = 2
RIGHT_SECTION_HEIGHT = 380
RANK_BADGE_HEIGHT = 160
DEFAULT_LINE_HEIGHT = 36
LINE_HEIGHTS: dict[str, int] = {
    "size-large": 60,
    "size-medium": 50,
    "size-small": 40,
    "size-tiny": 32,
}


# ─── Measurers ───────────────────────────────────────────────────────────────


class FixedWidthMeasurer:
    """Deterministic measurer: every character has the same width.

    With no explicit char_width, a character is em_ratio of the font size wide.
    """

    def __init__(self, char_width: Optional[float] = None, em_ratio: float = 0.5):
        self.char_width = char_width
        self.em_ratio = em_ratio

    def measure(self, text: str, font: FontSpec) -> int:
        width = self.char_width if self.char_width is not None else font.size * self.em_ratio
        return math.ceil(len(text) * width)


class PillowTextMeasurer:
    """Measures text with Pillow using a TrueType font, or Pillow's default font."""

    def __init__(self, font_path: Optional[str] = None):
        self.font_path = font_path or os.environ.get("SCORECARD_FONT_PATH") or None
        self._fonts: dict[int, ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}

    def _font(self, size: int):
        font = self._fonts.get(size)
        if font is None:
            if self.font_path:
                try:
                    font = ImageFont.truetype(self.font_path, size)
                except OSError as exc:
                    logger.warning("Could not load font %s, using default: %s", self.font_path, exc)
                    self.font_path = None
            if font is None:
                font = ImageFont.load_default(size=size)
            self._fonts[size] = font
        return font

    def measure(self, text: str, font: FontSpec) -> int:
        return math.ceil(self._font(font.size).getlength(text))


# ─── Title fitting ───────────────────────────────────────────────────────────


def title_available_width(icon_count: int) -> int:
    """Horizontal space left for the title beside the mod icons."""
    spacing = MOD_ICON_SPACING if icon_count > 0 else 0
    available = CARD_WIDTH - HORIZONTAL_PADDING - icon_count * MOD_ICON_WIDTH - spacing
    return max(MIN_TITLE_WIDTH, available)


def fit_title(
    title: str,
    available_width: int,
    measurer: TextMeasurer,
    font: FontSpec = TITLE_FONT,
) -> tuple[str, bool]:
    """Truncate a title to fit, returning (text, truncated).

    Trailing characters are removed until the text plus ellipsis fits or only
    MIN_TITLE_LENGTH characters remain.
    """
    if measurer.measure(title, font) <= available_width:
        return title, False

    truncated = title
    while measurer.measure(truncated + ELLIPSIS, font) > available_width and len(truncated) > MIN_TITLE_LENGTH:
        truncated = truncated[:-1]

    if len(truncated) < len(title):
        return truncated + ELLIPSIS, True
    return truncated, False


# ─── Right section ───────────────────────────────────────────────────────────


def select_size_class(available_width: int, classes: Sequence[tuple[str, int]]) -> Optional[str]:
    """Largest size class whose minimum width fits in the available space."""
    for name, min_width in classes:
        if available_width >= min_width:
            return name
    return None


def _row_width(row: list[HitStat], measurer: TextMeasurer) -> int:
    cells = [measurer.measure(f"{cell.label} {cell.value}", STAT_FONT) for cell in row]
    return sum(cells) + STAT_CELL_GAP * max(0, len(cells) - 1)


def left_section_width(presentation: PresentationModel, measurer: TextMeasurer) -> int:
    widths = [measurer.measure(f"Score: {presentation.score_text}", SCORE_FONT)]
    widths.extend(_row_width(row, measurer) for row in presentation.hit_rows)
    return max(MIN_LEFT_SECTION_WIDTH, max(widths))


def right_available_width(left_width: int) -> int:
    return CARD_WIDTH - (left_width + SECTION_MARGIN)


# ─── Vertical sizing ─────────────────────────────────────────────────────────


def right_content_height(
    extra_line_count: int,
    pp_size_class: Optional[str],
    full_combo_size_class: Optional[str],
    shows_full_combo: bool,
) -> int:
    height = RANK_BADGE_HEIGHT
    height += LINE_HEIGHTS.get(pp_size_class or "", DEFAULT_LINE_HEIGHT)
    if shows_full_combo:
        height += LINE_HEIGHTS.get(full_combo_size_class or "", DEFAULT_LINE_HEIGHT)
    height += extra_line_count * EXTRA_LINE_HEIGHT
    return height


def card_height(
    extra_line_count: int,
    shows_full_combo: bool,
    content_height: int,
    container_height: int = RIGHT_SECTION_HEIGHT,
) -> int:
    """Base height plus room for extra text lines and full-combo overflow."""
    height = CARD_BASE_HEIGHT
    if extra_line_count > FREE_EXTRA_LINES:
        height += (extra_line_count - FREE_EXTRA_LINES) * EXTRA_LINE_HEIGHT
    if shows_full_combo:
        height += max(0, content_height - container_height)
    return height


def fit_layout(title: str, presentation: PresentationModel, measurer: TextMeasurer) -> LayoutPlan:
    """Run every fitting pass for one scorecard."""
    title_width = title_available_width(len(presentation.mod_icons))
    fitted_title, truncated = fit_title(title, title_width, measurer)

    left_width = left_section_width(presentation, measurer)
    right_width = right_available_width(left_width)
    pp_class = select_size_class(right_width, PP_SIZE_CLASSES)
    fc_class = select_size_class(right_width, FULL_COMBO_SIZE_CLASSES) if presentation.shows_full_combo else None

    line_count = len(presentation.extra_lines)
    content = right_content_height(line_count, pp_class, fc_class, presentation.shows_full_combo)
    height = card_height(line_count, presentation.shows_full_combo, content)

    if truncated:
        logger.debug("Title truncated to %r (available %dpx)", fitted_title, title_width)

    return LayoutPlan(
        title=fitted_title,
        title_truncated=truncated,
        title_available_width=title_width,
        left_section_width=left_width,
        right_available_width=right_width,
        pp_size_class=pp_class,
        full_combo_size_class=fc_class,
        height=height,
    )
