"""
Particle Glyphs
Builds one solid primitive per point of a cloud as a single PyVista mesh.
"""
from __future__ import annotations

import logging
from typing import Dict, Tuple, TYPE_CHECKING

import numpy as np
import pyvista as pv

from pixelcloud.config import GLYPH_SCALE
from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.state import ParticleShape

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

# Cell array holding the per-primitive color
COLOR_ARRAY = "rgb"

_PRIMITIVE_CACHE: Dict[ParticleShape, Tuple[np.ndarray, np.ndarray]] = {}


def make_primitive(shape: ParticleShape) -> pv.PolyData:
    """
    Unit primitive for a particle shape, centred on the origin.

    - SQUARE: cube with edge 1
    - CIRCLE: sphere with radius 0.5 (16 x 16)
    - DIAMOND: octahedron with radius 0.6, turned 45 deg about Z then X
    """
    if shape == ParticleShape.SQUARE:
        mesh = pv.Cube(x_length=1.0, y_length=1.0, z_length=1.0)
    elif shape == ParticleShape.CIRCLE:
        mesh = pv.Sphere(radius=0.5, theta_resolution=16, phi_resolution=16)
    elif shape == ParticleShape.DIAMOND:
        mesh = pv.PlatonicSolid("octahedron", radius=0.6)
        mesh = mesh.rotate_z(45.0, inplace=False).rotate_x(45.0, inplace=False)
    else:
        raise ValueError(f"Unknown particle shape '{shape}'.")
    return mesh.triangulate()


def _primitive_arrays(shape: ParticleShape) -> Tuple[np.ndarray, np.ndarray]:
    """Cached (vertices (V, 3), triangles (F, 3)) of a primitive."""
    if shape not in _PRIMITIVE_CACHE:
        mesh = make_primitive(shape)
        triangles = np.asarray(mesh.faces).reshape(-1, 4)[:, 1:]
        _PRIMITIVE_CACHE[shape] = (np.asarray(mesh.points, dtype=np.float64), triangles)
    return _PRIMITIVE_CACHE[shape]


def instance_scale(particle_size: float) -> float:
    return particle_size * GLYPH_SCALE


def build_glyphs(cloud: PointCloud, shape: ParticleShape, scale: float) -> pv.PolyData:
    """
    Instance one primitive per point.

    Every primitive is translated to its point and carries the point's color
    (clamped bytes) in the cell array `COLOR_ARRAY`. Primitive i occupies cells
    [i * F, (i + 1) * F) where F is the triangle count of the primitive.
    """
    if cloud.is_empty:
        return pv.PolyData()

    vertices, triangles = _primitive_arrays(shape)
    n = len(cloud)
    n_verts = vertices.shape[0]
    n_tris = triangles.shape[0]

    points = (cloud.positions[:, None, :] + vertices[None, :, :] * scale).reshape(-1, 3)

    offsets = (np.arange(n) * n_verts)[:, None, None]
    tris = (triangles[None, :, :] + offsets).reshape(-1, 3)
    faces = np.hstack([np.full((tris.shape[0], 1), 3, dtype=tris.dtype), tris]).ravel()

    mesh = pv.PolyData(points, faces)
    mesh.cell_data[COLOR_ARRAY] = np.repeat(cloud.colors_as_bytes(), n_tris, axis=0)

    logger.debug(f"Built {n} '{shape}' glyphs ({mesh.n_cells} triangles).")
    return mesh


def glyph_colors(mesh: pv.PolyData, shape: ParticleShape) -> npt.NDArray[np.uint8]:
    """Per-primitive colors of a glyph mesh, one row per instanced point."""
    if mesh.n_cells == 0:
        return np.zeros((0, 3), dtype=np.uint8)
    _, triangles = _primitive_arrays(shape)
    return np.asarray(mesh.cell_data[COLOR_ARRAY])[::triangles.shape[0]]
