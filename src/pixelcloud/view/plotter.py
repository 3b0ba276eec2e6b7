"""
3D Visualization (PyVista Wrapper)
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Tuple, Union

import pyvista as pv

from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.state import ParticleShape, ViewportMode
from pixelcloud.view.glyphs import COLOR_ARRAY, build_glyphs, instance_scale

logger = logging.getLogger(__name__)

VIEWPORT_BACKGROUNDS = {
    ViewportMode.DARK: "#0d1117",
    ViewportMode.BRIGHT: "#f0f2f5",
    # On screen this is black; screenshots drop the background to alpha 0
    ViewportMode.TRANSPARENT: "black",
}


def camera_bounds(cloud: PointCloud, scale: float) -> Tuple[float, float, float, float, float, float]:
    """Cloud bounds grown by one glyph, as (xmin, xmax, ymin, ymax, zmin, zmax)."""
    lo, hi = cloud.bounds()
    pad = scale
    return (
        lo[0] - pad, hi[0] + pad,
        lo[1] - pad, hi[1] + pad,
        lo[2] - pad, hi[2] + pad,
    )


class PointCloudRenderer:
    """
    Keeps exactly one actor for the current cloud on a PyVista plotter.

    Works with a plain `pv.Plotter` or a `pyvistaqt.QtInteractor`. Each call to
    `show_cloud` removes the previous actor before the new instances are added,
    so a replaced cloud never lingers on screen.
    """

    def __init__(self, plotter: pv.Plotter, viewport: ViewportMode = ViewportMode.DARK) -> None:
        self.plotter = plotter
        self._actor: Optional[pv.Actor] = None
        self._cloud: Optional[PointCloud] = None
        self.viewport = viewport
        self.set_viewport(viewport)

    @property
    def cloud(self) -> Optional[PointCloud]:
        return self._cloud

    @property
    def has_actor(self) -> bool:
        return self._actor is not None

    def set_viewport(self, viewport: ViewportMode) -> None:
        self.viewport = viewport
        self.plotter.set_background(VIEWPORT_BACKGROUNDS[viewport])

    def clear(self, render: bool = True) -> None:
        if self._actor is not None:
            self.plotter.remove_actor(self._actor, render=False)
            self._actor = None
        self._cloud = None
        if render:
            self.plotter.render()

    def show_cloud(
        self,
        cloud: Optional[PointCloud],
        shape: ParticleShape = ParticleShape.SQUARE,
        particle_size: float = 1.0,
        reset_camera: bool = False,
        render: bool = True,
    ) -> None:
        """
        Replace the displayed cloud.

        Args:
            cloud: New cloud, or None to show nothing.
            shape: Primitive instanced per point.
            particle_size: Instance scale is particle_size * GLYPH_SCALE.
            reset_camera: Fit the camera to the new cloud.
            render: If True, triggers a re-render immediately.
        """
        self.clear(render=False)

        if cloud is not None and not cloud.is_empty:
            scale = instance_scale(particle_size)
            mesh = build_glyphs(cloud, shape, scale)
            self._actor = self.plotter.add_mesh(
                mesh,
                scalars=COLOR_ARRAY,
                rgb=True,
                show_scalar_bar=False,
                smooth_shading=shape == ParticleShape.CIRCLE,
                specular=0.5,
                reset_camera=False,
            )
            if reset_camera:
                self.plotter.reset_camera(render=False, bounds=camera_bounds(cloud, scale))
            logger.info(f"Showing {len(cloud)} particles as '{shape}'.")
        self._cloud = cloud

        if render:
            self.plotter.render()

    def screenshot(self, filepath: Union[str, os.PathLike]) -> None:
        """Save the current view as PNG. TRANSPARENT viewports keep alpha."""
        transparent = self.viewport == ViewportMode.TRANSPARENT
        self.plotter.screenshot(str(filepath), transparent_background=transparent)
        logger.info(f"Screenshot saved to: {filepath}")


def show_interactive(
    cloud: PointCloud,
    shape: ParticleShape = ParticleShape.SQUARE,
    particle_size: float = 1.0,
    viewport: ViewportMode = ViewportMode.DARK,
    title: str = "pixelcloud",
) -> None:
    """Open a blocking PyVista window with the cloud."""
    plotter = pv.Plotter(title=title)
    renderer = PointCloudRenderer(plotter, viewport)
    renderer.show_cloud(cloud, shape, particle_size, reset_camera=True, render=False)
    plotter.add_axes()
    plotter.show()


def save_screenshot(
    cloud: PointCloud,
    filepath: Union[str, os.PathLike],
    shape: ParticleShape = ParticleShape.SQUARE,
    particle_size: float = 1.0,
    viewport: ViewportMode = ViewportMode.DARK,
    window_size: Tuple[int, int] = (1200, 800),
    plotter: Optional[pv.Plotter] = None,
) -> None:
    """Render the cloud off screen and write it to an image file."""
    if plotter is None:
        plotter = pv.Plotter(off_screen=True, window_size=list(window_size))
    renderer = PointCloudRenderer(plotter, viewport)
    renderer.show_cloud(cloud, shape, particle_size, reset_camera=True, render=False)
    try:
        renderer.screenshot(filepath)
    finally:
        plotter.close()
