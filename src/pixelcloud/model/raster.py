"""
Raster Input
============
Defines the immutable RGBA pixel buffer consumed by the sampler, plus the two
ways the application acquires one: decoding an image file and rasterizing text.

Why is this file needed?
------------------------
1. Contract: The sampler only needs width, height and a row-major RGBA byte
   buffer. `Raster` enforces that shape once, so the sampler never has to.
2. Acquisition: Image decoding and downsampling (Pillow) stay outside of the
   sampler, which keeps sampling a pure function of its inputs.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Union, TYPE_CHECKING

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from pixelcloud.config import (
    MAX_RASTER_WIDTH,
    TEXT_BASE_FONT_SIZE,
    TEXT_CANVAS_HEIGHT,
    TEXT_CANVAS_WIDTH,
    TEXT_MIN_FONT_SIZE,
)

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

# Bold faces tried in order before falling back to Pillow's bundled font
_BOLD_FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "arialbd.ttf", "Arial Bold.ttf")


@dataclass(frozen=True, eq=False)
class Raster:
    """
    Row-major RGBA image, one uint8 per channel.

    `pixels` has shape (height, width, 4) and is read-only.
    """
    pixels: npt.NDArray[np.uint8]

    def __post_init__(self) -> None:
        arr = np.asarray(self.pixels)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected pixel array of shape (H, W, 4), got {arr.shape}.")
        if arr.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {arr.dtype}.")

        frozen = np.array(arr, dtype=np.uint8, copy=True)
        frozen.setflags(write=False)
        object.__setattr__(self, "pixels", frozen)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    def __hash__(self) -> int:
        return hash((self.pixels.shape, self.pixels.tobytes()))

    # ------------------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------------------

    @classmethod
    def empty(cls) -> Raster:
        return cls(np.zeros((0, 0, 4), dtype=np.uint8))

    @classmethod
    def from_buffer(cls, width: int, height: int, data: Union[bytes, bytearray, memoryview]) -> Raster:
        """
        Build a raster from a flat RGBA byte buffer.

        Raises:
            ValueError: If the buffer length does not match width * height * 4.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Raster dimensions must be non-negative, got {width}x{height}.")

        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(
                f"RGBA buffer for {width}x{height} needs {expected} bytes, got {len(data)}."
            )

        arr = np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, 4)
        return cls(arr)

    @classmethod
    def from_array(cls, array: npt.ArrayLike) -> Raster:
        """
        Build a raster from an image array.

        Accepts (H, W, 4) RGBA, (H, W, 3) RGB (alpha set to 255) or (H, W)
        grayscale. Values outside 0-255 raise ValueError.
        """
        arr = np.asarray(array)

        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)

        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported image array shape {arr.shape}.")

        if arr.dtype != np.uint8:
            if arr.size and (not np.all(np.isfinite(arr)) or arr.min() < 0 or arr.max() > 255):
                raise ValueError("Image array values must lie within 0-255.")
            arr = arr.astype(np.uint8)

        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)

        return cls(arr)

    @classmethod
    def from_image(cls, image: Image.Image) -> Raster:
        """Build a raster from a Pillow image of any mode."""
        return cls(np.asarray(image.convert("RGBA"), dtype=np.uint8))


# ------------------------------------------------------------------------------
# Acquisition
# ------------------------------------------------------------------------------

def downsample_to_width(image: Image.Image, max_width: int = MAX_RASTER_WIDTH) -> Image.Image:
    """
    Shrink an image to `max_width`, keeping the aspect ratio.
    Images already narrow enough are returned unchanged.
    """
    w, h = image.size
    if max_width <= 0 or w <= max_width:
        return image

    aspect = h / w
    new_w = max_width
    new_h = max(1, round(new_w * aspect))
    logger.debug(f"Downsampling image {w}x{h} -> {new_w}x{new_h}")
    return image.resize((new_w, new_h), Image.Resampling.BILINEAR)


def load_image(path: Union[str, os.PathLike], max_width: int = MAX_RASTER_WIDTH) -> Raster:
    """
    Decode an image file into a raster.

    Args:
        path: Image file readable by Pillow (PNG, JPEG, ...).
        max_width: Images wider than this are downsampled first. Pass 0 to
            keep the full resolution.

    Raises:
        FileNotFoundError: If the file does not exist.
        PIL.UnidentifiedImageError: If the file is not a decodable image.
    """
    logger.info(f"Loading image from: {path}")
    with Image.open(path) as img:
        img.load()
        rgba = img.convert("RGBA")

    rgba = downsample_to_width(rgba, max_width)
    raster = Raster.from_image(rgba)
    logger.info(f"Image loaded as {raster.width}x{raster.height} raster.")
    return raster


def _bold_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    for name in _BOLD_FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug("No bold TrueType font found, using Pillow's default font.")
    return ImageFont.load_default(size=size)


def _text_width(draw: ImageDraw.ImageDraw, text: str, font) -> float:
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    return right - left


def _centred_origin(draw: ImageDraw.ImageDraw, text: str, font, width: int, height: int) -> tuple:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return (width / 2 - (left + right) / 2, height / 2 - (top + bottom) / 2)


def rasterize_text(
    text: str,
    width: int = TEXT_CANVAS_WIDTH,
    height: int = TEXT_CANVAS_HEIGHT,
) -> Raster:
    """
    Render text as a raster for the text-to-cloud mode.

    White bold text is centred over a translucent black backdrop (alpha 0.3).
    The font shrinks from the base size (never below the minimum size) until the
    text fits into 90% of the canvas width. A soft glow pass sits under the
    sharp glyphs and a faint radial highlight brightens the centre.
    """
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, round(255 * 0.3)))
    draw = ImageDraw.Draw(canvas)

    font_size = TEXT_BASE_FONT_SIZE
    font = _bold_font(font_size)
    max_text_width = width * 0.9
    measured = _text_width(draw, text, font) if text else 0.0
    if measured > max_text_width:
        font_size = max(TEXT_MIN_FONT_SIZE, int(TEXT_BASE_FONT_SIZE * (max_text_width / measured)))
        font = _bold_font(font_size)

    center = (width / 2, height / 2)

    if text:
        origin = _centred_origin(draw, text, font, width, height)

        # Glow layer
        glow = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        ImageDraw.Draw(glow).text(origin, text, font=font, fill=(255, 255, 255, 255))
        canvas = Image.alpha_composite(canvas, glow.filter(ImageFilter.GaussianBlur(0.6)))

        # Sharp glyphs
        ImageDraw.Draw(canvas).text(origin, text, font=font, fill=(255, 255, 255, 255))

    # Radial highlight, applied only where something is already painted
    pixels = np.asarray(canvas, dtype=np.float64).copy()
    yy, xx = np.mgrid[0:height, 0:width]
    radius = min(width, height) * 0.6
    dist = np.hypot(xx + 0.5 - center[0], yy + 0.5 - center[1])
    weight = 0.18 * np.clip(1.0 - dist / radius, 0.0, 1.0)
    weight = np.where(pixels[..., 3] > 0, weight, 0.0)
    for c in range(3):
        pixels[..., c] = pixels[..., c] * (1.0 - weight) + 255.0 * weight

    logger.debug(f"Rasterized text '{text}' at font size {font_size}.")
    return Raster(np.clip(np.rint(pixels), 0, 255).astype(np.uint8))
