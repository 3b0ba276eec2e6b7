"""
Input/Output Manager (PLY)
Serializes point clouds to ASCII PLY files with per-vertex colors and reads
them back with plyfile.
"""
from __future__ import annotations

import io
import logging
import os
from typing import List, Union

import numpy as np
from plyfile import PlyData, PlyParseError

from pixelcloud.model.point_cloud import PointCloud

logger = logging.getLogger(__name__)

PLY_VERTEX_NAMES: List[str] = ["x", "y", "z", "red", "green", "blue"]

PLY_VERTEX_PROPERTIES: List[str] = [
    "property float x",
    "property float y",
    "property float z",
    "property uchar red",
    "property uchar green",
    "property uchar blue",
]


def ply_header(vertex_count: int) -> str:
    lines = [
        "ply",
        "format ascii 1.0",
        f"element vertex {vertex_count}",
        *PLY_VERTEX_PROPERTIES,
        "end_header",
    ]
    return "\n".join(lines) + "\n"


def export_ply(cloud: PointCloud) -> bytes:
    """
    Serialize a point cloud as ASCII PLY.

    Coordinates are written with 3 decimals. Colors are scaled by 255, floored
    and clamped to 0-255. An empty cloud produces a header-only file.
    """
    # Adding 0.0 turns -0.0 into 0.0 so centred rows do not print "-0.000"
    positions = cloud.positions + 0.0
    colors = cloud.colors_as_bytes()

    parts = [ply_header(len(cloud))]
    for (x, y, z), (r, g, b) in zip(positions.tolist(), colors.tolist()):
        parts.append(f"{x:.3f} {y:.3f} {z:.3f} {r} {g} {b}\n")

    return "".join(parts).encode("ascii")


def save_ply(cloud: PointCloud, filepath: Union[str, os.PathLike]) -> None:
    logger.info(f"Exporting {len(cloud)} points to: {filepath}")
    data = export_ply(cloud)
    try:
        with open(filepath, "wb") as f:
            f.write(data)
    except OSError as e:
        logger.error(f"Failed to write PLY file '{filepath}': {e}")
        raise
    logger.info(f"PLY export written ({len(data)} bytes).")


def _cloud_from_ply(ply: PlyData) -> PointCloud:
    """Build a cloud from the vertex element of a parsed PLY file."""
    try:
        vertex = ply["vertex"]
    except KeyError:
        raise ValueError("PLY file has no 'vertex' element.") from None

    names = [prop.name for prop in vertex.properties]
    missing = [name for name in PLY_VERTEX_NAMES if name not in names]
    if missing:
        raise ValueError(f"PLY vertex element missing required properties: {missing}")

    if vertex.count == 0:
        return PointCloud.empty()

    positions = np.column_stack([vertex[name] for name in ("x", "y", "z")]).astype(np.float64)
    rgb = np.column_stack([vertex[name] for name in ("red", "green", "blue")]).astype(np.float64)
    if np.any(rgb < 0) or np.any(rgb > 255) or np.any(rgb != np.floor(rgb)):
        raise ValueError("Vertex colors must be integers within 0-255.")

    return PointCloud(positions, rgb / 255)


def parse_ply(data: Union[bytes, str]) -> PointCloud:
    """
    Parse a PLY file holding at least the vertex properties written by `export_ply`.

    Colors are returned as byte values divided by 255.

    Raises:
        ValueError: If the file is not valid PLY or lacks the vertex layout.
    """
    raw = data.encode("ascii") if isinstance(data, str) else data
    try:
        ply = PlyData.read(io.BytesIO(raw))
    except (PlyParseError, ValueError) as e:
        raise ValueError(f"Malformed PLY data: {e}") from e
    return _cloud_from_ply(ply)


def load_ply(filepath: Union[str, os.PathLike]) -> PointCloud:
    logger.info(f"Loading PLY from: {filepath}")
    try:
        ply = PlyData.read(str(filepath))
    except (PlyParseError, ValueError) as e:
        raise ValueError(f"Malformed PLY file '{filepath}': {e}") from e
    cloud = _cloud_from_ply(ply)
    logger.info(f"Loaded {len(cloud)} points.")
    return cloud
