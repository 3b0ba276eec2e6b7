"""
Raster Sampler
==============
Turns a raster and a parameter set into a colored point cloud.

Why is this file needed?
------------------------
1. Geometry: It decides which pixels become points (stride + alpha filter)
   and where they sit in the scene (centred XY, luminance-driven Z).
2. Purity: `sample()` is a plain function of (raster, config). Callers re-run it
   whenever something relevant changes; there is no hidden reactive state.

Classes:
    SamplingConfig: Validated parameter set for one pass.
    ConfigurationError: Raised for invalid numeric parameters.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace as dc_replace
import logging
import math
from typing import Any, Dict, Mapping, Tuple, Union

import numpy as np

from pixelcloud.config import (
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_BRIGHTNESS,
    DEFAULT_PARTICLE_SIZE,
    DEFAULT_STEP,
    DEFAULT_Z_EXTRUSION,
    POSITION_SCALE,
)
from pixelcloud.model.color import ColorMode, RGB, parse_hex_color, transform_array
from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.raster import Raster

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """A sampling parameter is outside its allowed range."""


@dataclass(frozen=True)
class SamplingConfig:
    step: float = DEFAULT_STEP
    particle_size: float = DEFAULT_PARTICLE_SIZE
    z_extrusion: float = DEFAULT_Z_EXTRUSION
    alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD
    color_mode: ColorMode = ColorMode.ORIGINAL
    brightness: float = DEFAULT_BRIGHTNESS
    tint: RGB = field(default_factory=RGB.white)

    @property
    def effective_step(self) -> int:
        """Stride actually used by the sampler: floor(step), never below 1."""
        return max(1, math.floor(self.step))

    def validate(self) -> SamplingConfig:
        """
        Check the numeric constraints and return self.

        `step` below 1 is allowed (it is clamped by `effective_step`); every
        non-finite value is rejected so NaN never reaches the geometry.

        Raises:
            ConfigurationError: On the first violated constraint.
        """
        for name in ("step", "particle_size", "z_extrusion", "brightness"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigurationError(f"'{name}' must be finite, got {value}.")

        if self.particle_size <= 0:
            raise ConfigurationError(f"'particle_size' must be positive, got {self.particle_size}.")
        if self.z_extrusion < 0:
            raise ConfigurationError(f"'z_extrusion' must be non-negative, got {self.z_extrusion}.")
        if self.brightness < 0:
            raise ConfigurationError(f"'brightness' must be non-negative, got {self.brightness}.")

        threshold = self.alpha_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, np.integer)):
            raise ConfigurationError(f"'alpha_threshold' must be an integer, got {self.alpha_threshold}.")
        if not 0 <= threshold <= 255:
            raise ConfigurationError(f"'alpha_threshold' must be within 0-255, got {self.alpha_threshold}.")

        if not isinstance(self.color_mode, ColorMode):
            raise ConfigurationError(f"'color_mode' must be a ColorMode, got {self.color_mode!r}.")

        for channel in self.tint.as_tuple():
            if not math.isfinite(channel) or not 0.0 <= channel <= 1.0:
                raise ConfigurationError(f"Tint channels must be within 0-1, got {self.tint}.")

        return self

    def replace(self, **changes: Any) -> SamplingConfig:
        return dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "particle_size": self.particle_size,
            "z_extrusion": self.z_extrusion,
            "alpha_threshold": self.alpha_threshold,
            "color_mode": str(self.color_mode),
            "brightness": self.brightness,
            "tint": self.tint.to_hex(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SamplingConfig:
        """
        Build a config from plain settings (e.g. parsed JSON or CLI values).

        `color_mode` may be a key or a UI label, `tint` a hex string or an
        (r, g, b) float triple. Unknown keys raise ConfigurationError.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown sampling settings: {sorted(unknown)}")

        values: Dict[str, Any] = dict(data)
        if "color_mode" in values:
            try:
                values["color_mode"] = ColorMode.from_name(values["color_mode"])
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        if "tint" in values:
            values["tint"] = _coerce_tint(values["tint"])
        for name in ("step", "particle_size", "z_extrusion", "brightness"):
            if name in values:
                values[name] = _coerce_number(name, values[name])
        if "alpha_threshold" in values:
            threshold = _coerce_number("alpha_threshold", values["alpha_threshold"])
            if not threshold.is_integer():
                raise ConfigurationError(f"'alpha_threshold' must be an integer, got {values['alpha_threshold']}.")
            values["alpha_threshold"] = int(threshold)

        return cls(**values).validate()


def _coerce_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"'{name}' must be a number, got {value!r}.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be a number, got {value!r}.") from None


def _coerce_tint(value: Union[str, RGB, Tuple[float, float, float]]) -> RGB:
    if isinstance(value, RGB):
        return value
    if isinstance(value, str):
        try:
            return parse_hex_color(value)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
    try:
        r, g, b = value
        return RGB(float(r), float(g), float(b))
    except (TypeError, ValueError):
        raise ConfigurationError(f"Tint must be a hex color or an (r, g, b) triple, got {value!r}.") from None


def sample(raster: Raster, config: SamplingConfig) -> PointCloud:
    """
    Sample a raster into a point cloud.

    Pixels are visited row by row at the effective stride; pixels whose alpha
    is below the threshold are skipped. Each kept pixel at (x, y) becomes

        x' = (x - W/2) * particle_size * K
        y' = -(y - H/2) * particle_size * K
        z' = (r + g + b) / 765 * z_extrusion * K

    with K = POSITION_SCALE, colored by the configured color mode.

    Raises:
        ConfigurationError: If the config fails validation.
    """
    config.validate()

    if raster.is_empty:
        logger.debug("Empty raster, returning empty point cloud.")
        return PointCloud.empty()

    step = config.effective_step
    w, h = raster.width, raster.height

    # Row-major stride grid; slicing keeps scan order
    grid = raster.pixels[::step, ::step]
    ys, xs = np.mgrid[0:h:step, 0:w:step]

    keep = grid[..., 3] >= config.alpha_threshold
    rgb = grid[..., :3][keep].astype(np.float64)
    xs = xs[keep].astype(np.float64)
    ys = ys[keep].astype(np.float64)

    luma = (rgb[:, 0] + rgb[:, 1] + rgb[:, 2]) / (3 * 255)

    positions = np.empty((xs.shape[0], 3), dtype=np.float64)
    positions[:, 0] = (xs - w / 2) * config.particle_size * POSITION_SCALE
    positions[:, 1] = -(ys - h / 2) * config.particle_size * POSITION_SCALE
    positions[:, 2] = luma * config.z_extrusion * POSITION_SCALE

    colors = transform_array(rgb, config.color_mode, config.brightness, config.tint)

    logger.debug(
        f"Sampled {w}x{h} raster at step {step}: {positions.shape[0]} points "
        f"(mode={config.color_mode}, alpha>={config.alpha_threshold})."
    )
    return PointCloud(positions, colors)
