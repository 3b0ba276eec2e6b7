from __future__ import annotations

import numpy as np
import pytest
import pyvista as pv

from pixelcloud.config import GLYPH_SCALE
from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.state import ParticleShape, ViewportMode
from pixelcloud.view.glyphs import COLOR_ARRAY, build_glyphs, glyph_colors, instance_scale, make_primitive
from pixelcloud.view.plotter import VIEWPORT_BACKGROUNDS, PointCloudRenderer, camera_bounds, save_screenshot

CLOUD = PointCloud(
    [[0.0, 0.0, 0.0], [1.0, 2.0, 3.0], [-4.0, 0.5, 8.0]],
    [[1.0, 0.0, 0.0], [0.0, 0.5, 1.0], [2.0, -1.0, 0.25]],
)


class FakePlotter:
    """Records calls a PointCloudRenderer makes on a plotter."""

    def __init__(self) -> None:
        self.background = None
        self.actors = []
        self.renders = 0
        self.add_kwargs = []
        self.camera_bounds = []
        self.screenshots = []
        self.closed = False

    def set_background(self, color) -> None:
        self.background = color

    def add_mesh(self, mesh, **kwargs):
        actor = object()
        self.actors.append(actor)
        self.add_kwargs.append(kwargs)
        return actor

    def remove_actor(self, actor, render=True) -> None:
        self.actors.remove(actor)

    def render(self) -> None:
        self.renders += 1

    def reset_camera(self, render=True, bounds=None) -> None:
        self.camera_bounds.append(bounds)

    def screenshot(self, filename, transparent_background=False) -> None:
        self.screenshots.append((filename, transparent_background))

    def close(self) -> None:
        self.closed = True


class TestPrimitives:
    def test_cube_is_unit_sized(self) -> None:
        mesh = make_primitive(ParticleShape.SQUARE)
        assert np.allclose(mesh.bounds, (-0.5, 0.5, -0.5, 0.5, -0.5, 0.5))
        assert mesh.is_all_triangles

    def test_sphere_radius(self) -> None:
        mesh = make_primitive(ParticleShape.CIRCLE)
        assert np.allclose(np.linalg.norm(mesh.points, axis=1), 0.5, atol=1e-5)

    def test_octahedron(self) -> None:
        mesh = make_primitive(ParticleShape.DIAMOND)
        assert mesh.n_cells == 8
        assert np.allclose(np.linalg.norm(mesh.points, axis=1), 0.6, atol=1e-5)

    def test_instance_scale(self) -> None:
        assert instance_scale(2.0) == pytest.approx(2.0 * GLYPH_SCALE)


class TestBuildGlyphs:
    @pytest.mark.parametrize("shape", list(ParticleShape))
    def test_one_primitive_per_point(self, shape: ParticleShape) -> None:
        primitive = make_primitive(shape)
        mesh = build_glyphs(CLOUD, shape, 0.1)
        assert mesh.n_cells == primitive.n_cells * len(CLOUD)
        assert mesh.n_points == primitive.n_points * len(CLOUD)

    @pytest.mark.parametrize("shape", list(ParticleShape))
    def test_colors_follow_points(self, shape: ParticleShape) -> None:
        mesh = build_glyphs(CLOUD, shape, 0.1)
        assert np.array_equal(glyph_colors(mesh, shape), CLOUD.colors_as_bytes())
        assert mesh.cell_data[COLOR_ARRAY].dtype == np.uint8

    def test_primitives_are_centred_on_points(self) -> None:
        primitive = make_primitive(ParticleShape.SQUARE)
        mesh = build_glyphs(CLOUD, ParticleShape.SQUARE, 0.1)
        per_point = mesh.points.reshape(len(CLOUD), primitive.n_points, 3)
        assert np.allclose(per_point.mean(axis=1), CLOUD.positions)
        extent = per_point.max(axis=1) - per_point.min(axis=1)
        assert np.allclose(extent, 0.1)

    def test_empty_cloud(self) -> None:
        mesh = build_glyphs(PointCloud.empty(), ParticleShape.CIRCLE, 1.0)
        assert isinstance(mesh, pv.PolyData)
        assert mesh.n_cells == 0
        assert glyph_colors(mesh, ParticleShape.CIRCLE).shape == (0, 3)


class TestPointCloudRenderer:
    def test_viewport_background(self) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter, ViewportMode.BRIGHT)
        assert plotter.background == VIEWPORT_BACKGROUNDS[ViewportMode.BRIGHT]
        renderer.set_viewport(ViewportMode.DARK)
        assert plotter.background == "#0d1117"

    def test_replacing_cloud_leaves_single_actor(self) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter)
        renderer.show_cloud(CLOUD, ParticleShape.SQUARE)
        renderer.show_cloud(CLOUD, ParticleShape.DIAMOND)
        assert len(plotter.actors) == 1
        assert renderer.has_actor
        assert plotter.add_kwargs[-1]["scalars"] == COLOR_ARRAY
        assert plotter.add_kwargs[-1]["rgb"] is True

    def test_sphere_uses_smooth_shading(self) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter)
        renderer.show_cloud(CLOUD, ParticleShape.CIRCLE)
        assert plotter.add_kwargs[-1]["smooth_shading"] is True

    @pytest.mark.parametrize("cloud", [None, PointCloud.empty()])
    def test_empty_cloud_removes_actor(self, cloud) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter)
        renderer.show_cloud(CLOUD)
        renderer.show_cloud(cloud)
        assert plotter.actors == []
        assert not renderer.has_actor
        assert renderer.cloud is cloud

    def test_render_flag(self) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter)
        renderer.show_cloud(CLOUD, render=False)
        assert plotter.renders == 0
        renderer.clear()
        assert plotter.renders == 1

    def test_camera_fits_cloud_on_request(self) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter)
        renderer.show_cloud(CLOUD, particle_size=1.0)
        assert plotter.camera_bounds == []

        renderer.show_cloud(CLOUD, particle_size=1.0, reset_camera=True)
        assert plotter.camera_bounds == [camera_bounds(CLOUD, instance_scale(1.0))]
        assert plotter.add_kwargs[-1]["reset_camera"] is False

    @pytest.mark.parametrize(
        "viewport, transparent",
        [(ViewportMode.DARK, False), (ViewportMode.BRIGHT, False), (ViewportMode.TRANSPARENT, True)],
    )
    def test_screenshot_alpha_follows_viewport(self, tmp_path, viewport, transparent) -> None:
        plotter = FakePlotter()
        renderer = PointCloudRenderer(plotter, viewport)
        renderer.screenshot(tmp_path / "shot.png")
        assert plotter.screenshots == [(str(tmp_path / "shot.png"), transparent)]


def test_camera_bounds_pad_by_glyph() -> None:
    bounds = camera_bounds(CLOUD, 0.5)
    assert bounds == pytest.approx((-4.5, 1.5, -0.5, 2.5, -0.5, 8.5))


class TestSaveScreenshot:
    def test_renders_and_closes(self, tmp_path) -> None:
        plotter = FakePlotter()
        path = tmp_path / "cloud.png"

        save_screenshot(CLOUD, path, ParticleShape.DIAMOND, 2.0, ViewportMode.TRANSPARENT, plotter=plotter)

        assert len(plotter.actors) == 1
        assert plotter.camera_bounds == [camera_bounds(CLOUD, instance_scale(2.0))]
        assert plotter.screenshots == [(str(path), True)]
        assert plotter.background == VIEWPORT_BACKGROUNDS[ViewportMode.TRANSPARENT]
        assert plotter.closed

    def test_closes_plotter_when_writing_fails(self, tmp_path) -> None:
        class FailingPlotter(FakePlotter):
            def screenshot(self, filename, transparent_background=False) -> None:
                raise OSError("disk full")

        plotter = FailingPlotter()
        with pytest.raises(OSError):
            save_screenshot(CLOUD, tmp_path / "cloud.png", plotter=plotter)
        assert plotter.closed
