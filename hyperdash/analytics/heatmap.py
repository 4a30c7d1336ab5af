"""
Heatmap colors for correlation values.

Maps a value in [-1, 1] to an RGB triple by piecewise-linear interpolation
between three fixed stops: blue at -1, a light neutral at 0 and red at +1.
"""

import math
from typing import Tuple

RGB = Tuple[int, int, int]

NEGATIVE: RGB = (59, 130, 246)   # #3b82f6
NEUTRAL: RGB = (241, 245, 249)   # #f1f5f9
POSITIVE: RGB = (239, 68, 68)    # #ef4444


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _mix(a: RGB, b: RGB, p: float) -> RGB:
    """Linear interpolation from a (p=0) to b (p=1), channel by channel."""
    return (
        _round_half_up(a[0] + (b[0] - a[0]) * p),
        _round_half_up(a[1] + (b[1] - a[1]) * p),
        _round_half_up(a[2] + (b[2] - a[2]) * p),
    )


def color_for(value: float) -> RGB:
    """
    Map a correlation value to a heatmap color.

    The value is clamped to [-1, 1]. Non-finite values are the caller's
    responsibility (render them blank).

    Args:
        value: Finite correlation value

    Returns:
        (r, g, b) with integer channels in 0..255
    """
    x = max(-1.0, min(1.0, float(value)))
    if x < 0:
        return _mix(NEGATIVE, NEUTRAL, x + 1.0)
    return _mix(NEUTRAL, POSITIVE, x)


def css_color(rgb: RGB) -> str:
    """Format an RGB triple as a CSS color, e.g. "rgb(241, 245, 249)"."""
    return f"rgb({rgb[0]}, {rgb[1]}, {rgb[2]})"


def mpl_color(rgb: RGB) -> Tuple[float, float, float]:
    """Format an RGB triple as a matplotlib color tuple."""
    return (rgb[0] / 255.0, rgb[1] / 255.0, rgb[2] / 255.0)
