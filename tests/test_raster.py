from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from pixelcloud.model.raster import Raster, downsample_to_width, load_image, rasterize_text


class TestRaster:
    def test_from_buffer_is_row_major(self) -> None:
        data = bytes([
            1, 2, 3, 4, 5, 6, 7, 8,
            9, 10, 11, 12, 13, 14, 15, 16,
        ])
        raster = Raster.from_buffer(2, 2, data)
        assert raster.width == 2
        assert raster.height == 2
        assert tuple(raster.pixels[0, 1]) == (5, 6, 7, 8)
        assert tuple(raster.pixels[1, 0]) == (9, 10, 11, 12)

    def test_from_buffer_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            Raster.from_buffer(2, 2, bytes(15))

    def test_from_buffer_negative_size(self) -> None:
        with pytest.raises(ValueError):
            Raster.from_buffer(-1, 2, b"")

    def test_empty(self) -> None:
        raster = Raster.empty()
        assert raster.is_empty
        assert (raster.width, raster.height) == (0, 0)

    def test_pixels_are_read_only_copies(self) -> None:
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = Raster(source)
        source[0, 0, 0] = 99
        assert raster.pixels[0, 0, 0] == 0
        with pytest.raises(ValueError):
            raster.pixels[0, 0, 0] = 1

    @pytest.mark.parametrize(
        "array",
        [np.zeros((2, 2, 2), dtype=np.uint8), np.zeros((2, 2), dtype=np.uint8), np.zeros((2, 2, 4), dtype=np.float32)],
    )
    def test_constructor_rejects_bad_arrays(self, array) -> None:
        with pytest.raises(ValueError):
            Raster(array)

    def test_from_array_rgb_gets_opaque_alpha(self) -> None:
        raster = Raster.from_array(np.full((3, 2, 3), 7, dtype=np.uint8))
        assert raster.pixels.shape == (3, 2, 4)
        assert np.all(raster.pixels[..., 3] == 255)
        assert np.all(raster.pixels[..., :3] == 7)

    def test_from_array_grayscale(self) -> None:
        raster = Raster.from_array(np.array([[0, 128]], dtype=np.uint8))
        assert tuple(raster.pixels[0, 1]) == (128, 128, 128, 255)

    @pytest.mark.parametrize(
        "array",
        [
            np.array([[256, 0]], dtype=np.int32),
            np.array([[-1, 0]], dtype=np.int16),
            np.array([[0.0, 300.5]], dtype=np.float64),
            np.array([[np.nan, 0.0]], dtype=np.float64),
        ],
    )
    def test_from_array_rejects_out_of_range_values(self, array) -> None:
        with pytest.raises(ValueError):
            Raster.from_array(array)

    def test_from_array_accepts_wider_integer_types(self) -> None:
        raster = Raster.from_array(np.array([[0, 255]], dtype=np.int64))
        assert tuple(raster.pixels[0, 1]) == (255, 255, 255, 255)

    def test_from_array_rejects_other_shapes(self) -> None:
        with pytest.raises(ValueError):
            Raster.from_array(np.zeros((2, 2, 5), dtype=np.uint8))

    def test_equality_and_hash(self) -> None:
        a = Raster(np.ones((2, 3, 4), dtype=np.uint8))
        b = Raster(np.ones((2, 3, 4), dtype=np.uint8))
        assert a == b
        assert hash(a) == hash(b)
        assert a != Raster(np.zeros((2, 3, 4), dtype=np.uint8))

    def test_from_image_keeps_pixels(self) -> None:
        pixels = np.arange(2 * 3 * 4, dtype=np.uint8).reshape(2, 3, 4)
        assert Raster.from_image(Image.fromarray(pixels)) == Raster(pixels)


class TestLoadImage:
    def test_load_png_keeps_alpha(self, tmp_path) -> None:
        path = tmp_path / "dot.png"
        img = Image.new("RGBA", (4, 3), (0, 0, 0, 0))
        img.putpixel((1, 2), (255, 0, 0, 200))
        img.save(path)

        raster = load_image(path)
        assert (raster.width, raster.height) == (4, 3)
        assert tuple(raster.pixels[2, 1]) == (255, 0, 0, 200)
        assert raster.pixels[0, 0, 3] == 0

    def test_load_rgb_jpeg_is_opaque(self, tmp_path) -> None:
        path = tmp_path / "flat.jpg"
        Image.new("RGB", (8, 8), (40, 80, 120)).save(path)
        raster = load_image(path)
        assert np.all(raster.pixels[..., 3] == 255)

    def test_wide_images_are_downsampled(self, tmp_path) -> None:
        path = tmp_path / "wide.png"
        Image.new("RGBA", (1024, 300), (10, 10, 10, 255)).save(path)
        raster = load_image(path, max_width=512)
        assert (raster.width, raster.height) == (512, 150)

    def test_zero_max_width_keeps_resolution(self, tmp_path) -> None:
        path = tmp_path / "wide.png"
        Image.new("RGBA", (600, 10), (10, 10, 10, 255)).save(path)
        assert load_image(path, max_width=0).width == 600

    def test_downsample_leaves_small_images_alone(self) -> None:
        img = Image.new("RGBA", (100, 50))
        assert downsample_to_width(img, 512) is img

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.png")


class TestRasterizeText:
    def test_canvas_size_and_backdrop(self) -> None:
        raster = rasterize_text("HI", width=200, height=120)
        assert (raster.width, raster.height) == (200, 120)
        # Corners hold the translucent backdrop
        assert raster.pixels[0, 0, 3] == round(255 * 0.3)

    def test_text_pixels_are_opaque_white(self) -> None:
        raster = rasterize_text("HI", width=400, height=300)
        opaque = raster.pixels[..., 3] == 255
        assert opaque.any()
        assert np.all(raster.pixels[opaque][:, :3] >= 250)

    def test_empty_text_is_only_backdrop(self) -> None:
        raster = rasterize_text("", width=50, height=40)
        assert np.all(raster.pixels[..., 3] == round(255 * 0.3))
