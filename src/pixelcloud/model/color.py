"""
Color Transform
===============
Maps source pixel colors to particle colors for the 12 stylistic presets.

Why is this file needed?
------------------------
1. Styling: Every point of the cloud gets its color from here; the presets are
   fixed arithmetic recombinations of the pixel channels and its luminance.
2. Consistency: The scalar `transform` and the vectorised `transform_array`
   share the same formula table, so a single pixel and a whole raster pass
   always agree.

Classes:
    ColorMode: Closed set of color presets.
    RGB: Float color triple (0-1 nominal range).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Dict, Tuple, Union, TYPE_CHECKING
import logging

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

# Rec. 601 luma weights
LUMA_WEIGHTS: Tuple[float, float, float] = (0.299, 0.587, 0.114)


class ColorMode(StrEnum):
    ORIGINAL = "ORIGINAL"
    COOL_BLACK = "COOL_BLACK"
    CYBERPUNK = "CYBERPUNK"
    MATRIX = "MATRIX"
    GOLDEN = "GOLDEN"
    OCEAN = "OCEAN"
    INFERNO = "INFERNO"
    VAPORWAVE = "VAPORWAVE"
    ARCTIC = "ARCTIC"
    MONO = "MONO"
    SEPIA = "SEPIA"
    BLUEPRINT = "BLUEPRINT"

    @property
    def label(self) -> str:
        return COLOR_MODE_LABELS[self]

    @classmethod
    def from_name(cls, name: Union[str, ColorMode]) -> ColorMode:
        """
        Resolve a mode from its key ('cool_black', 'COOL-BLACK') or its UI label.

        Raises:
            ValueError: If the name matches no mode.
        """
        if isinstance(name, ColorMode):
            return name

        key = name.strip().upper().replace("-", "_").replace(" ", "_")
        if key in cls.__members__:
            return cls[key]

        for mode, label in COLOR_MODE_LABELS.items():
            if label == name.strip():
                return mode

        raise ValueError(f"Unknown color mode '{name}'.")


# Labels shown in the mode dropdown
COLOR_MODE_LABELS: Dict[ColorMode, str] = {
    ColorMode.ORIGINAL: "原色 (ORIGINAL)",
    ColorMode.COOL_BLACK: "极地酷黑 (COOL BLACK)",
    ColorMode.CYBERPUNK: "赛博朋克 (CYBERPUNK)",
    ColorMode.MATRIX: "黑客帝国 (MATRIX)",
    ColorMode.GOLDEN: "黑金流光 (GOLDEN)",
    ColorMode.OCEAN: "深海蓝调 (OCEAN)",
    ColorMode.INFERNO: "地狱烈火 (INFERNO)",
    ColorMode.VAPORWAVE: "蒸汽波 (VAPORWAVE)",
    ColorMode.ARCTIC: "极地冰川 (ARCTIC)",
    ColorMode.MONO: "黑白胶片 (MONO)",
    ColorMode.SEPIA: "复古怀旧 (SEPIA)",
    ColorMode.BLUEPRINT: "工程蓝图 (BLUEPRINT)",
}


@dataclass(frozen=True)
class RGB:
    """Float color triple. Channels are nominally in [0, 1]."""
    r: float
    g: float
    b: float

    @classmethod
    def white(cls) -> RGB:
        return cls(1.0, 1.0, 1.0)

    @property
    def is_white(self) -> bool:
        return self.r == 1.0 and self.g == 1.0 and self.b == 1.0

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)

    def to_hex(self) -> str:
        channels = (min(255, max(0, int(round(c * 255)))) for c in self.as_tuple())
        return "#" + "".join(f"{c:02x}" for c in channels)


def parse_hex_color(value: str) -> RGB:
    """
    Parse '#rrggbb' or '#rgb' into an RGB with channels in [0, 1].

    Raises:
        ValueError: If the string is not a hex color.
    """
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Invalid hex color '{value}'.")
    try:
        r, g, b = (int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid hex color '{value}'.") from None
    return RGB(r / 255, g / 255, b / 255)


# ------------------------------------------------------------------------------
# Formula table
# ------------------------------------------------------------------------------
# Each formula takes normalized channels (r, g, b) and luminance (gray). The
# arguments are numpy scalars or equally shaped arrays; outputs are unclamped
# except where the formula itself clamps.
Channels = Tuple["npt.ArrayLike", "npt.ArrayLike", "npt.ArrayLike"]
ModeFormula = Callable[[np.ndarray, np.ndarray, np.ndarray, np.ndarray], Channels]


def _zeros(x: np.ndarray) -> np.ndarray:
    return np.zeros_like(x)


def _ones(x: np.ndarray) -> np.ndarray:
    return np.ones_like(x)


_FORMULAS: Dict[ColorMode, ModeFormula] = {
    ColorMode.ORIGINAL: lambda r, g, b, gray: (r, g, b),
    ColorMode.COOL_BLACK: lambda r, g, b, gray: (gray * 0.2, gray * 0.2, gray * 0.3 + 0.1),
    ColorMode.CYBERPUNK: lambda r, g, b, gray: (r * 1.2, g * 0.8, b * 1.5),
    ColorMode.MATRIX: lambda r, g, b, gray: (_zeros(gray), gray * 1.5, _zeros(gray)),
    ColorMode.GOLDEN: lambda r, g, b, gray: (gray * 1.2, gray * 0.9, gray * 0.2),
    ColorMode.OCEAN: lambda r, g, b, gray: (_zeros(gray), gray * 0.8, gray * 1.2),
    ColorMode.INFERNO: lambda r, g, b, gray: (gray * 1.5, gray * 0.5, _zeros(gray)),
    ColorMode.VAPORWAVE: lambda r, g, b, gray: (
        np.minimum(1.0, r + 0.2), g * 0.8, np.minimum(1.0, b + 0.3)
    ),
    ColorMode.ARCTIC: lambda r, g, b, gray: (gray * 0.8, gray * 0.9, _ones(gray)),
    ColorMode.MONO: lambda r, g, b, gray: (gray, gray, gray),
    ColorMode.SEPIA: lambda r, g, b, gray: (
        np.minimum(1.0, (r * 0.393) + (g * 0.769) + (b * 0.189)),
        np.minimum(1.0, (r * 0.349) + (g * 0.686) + (b * 0.168)),
        np.minimum(1.0, (r * 0.272) + (g * 0.534) + (b * 0.131)),
    ),
    ColorMode.BLUEPRINT: lambda r, g, b, gray: (_zeros(gray), gray * 0.5, _ones(gray)),
}


def formula_for(mode: ColorMode) -> ModeFormula:
    """
    Look up the formula of a mode.

    Raises:
        KeyError: If the mode has no formula (a new enum member was added
            without extending the table).
    """
    try:
        return _FORMULAS[mode]
    except KeyError:
        raise KeyError(f"No color formula registered for mode '{mode}'.") from None


def transform_array(
    rgb: npt.ArrayLike,
    mode: ColorMode,
    brightness: float = 1.0,
    tint: RGB = RGB(1.0, 1.0, 1.0),
) -> npt.NDArray[np.float64]:
    """
    Apply a color mode to many pixels at once.

    Args:
        rgb: (N, 3) array of byte channels (0-255).
        mode: Color preset.
        brightness: Multiplicative gain applied last.
        tint: Multiplicative tint, skipped when white.

    Returns:
        (N, 3) float64 array of unclamped colors.
    """
    arr = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)

    norm_r = arr[:, 0] / 255
    norm_g = arr[:, 1] / 255
    norm_b = arr[:, 2] / 255

    gray = norm_r * LUMA_WEIGHTS[0] + norm_g * LUMA_WEIGHTS[1] + norm_b * LUMA_WEIGHTS[2]

    channels = formula_for(mode)(norm_r, norm_g, norm_b, gray)
    out = np.empty((arr.shape[0], 3), dtype=np.float64)
    for i, channel in enumerate(channels):
        out[:, i] = channel

    if not tint.is_white:
        out *= np.array(tint.as_tuple(), dtype=np.float64)

    out *= brightness
    return out


def transform(
    rgb: Tuple[int, int, int],
    mode: ColorMode,
    brightness: float = 1.0,
    tint: RGB = RGB(1.0, 1.0, 1.0),
) -> Tuple[float, float, float]:
    """Apply a color mode to a single (r, g, b) byte triple."""
    r, g, b = transform_array(np.array([rgb]), mode, brightness, tint)[0]
    return (float(r), float(g), float(b))
