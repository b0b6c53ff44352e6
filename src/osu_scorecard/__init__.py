"""osu! Scorecard generator.

Turns an osu! score or beatmap into a shareable scorecard layout, with
user overrides for any displayed value.
"""

__version__ = "0.1.0"
