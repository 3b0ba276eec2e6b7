"""
Point Cloud (Data Model)
========================
The immutable result of one sampling pass.

Why is this file needed?
------------------------
1. Snapshot semantics: The renderer and the exporter both read the cloud while a
   new sampling pass may already be running. Clouds are never edited in place;
   a new pass produces a new object that replaces the old one by reference.
2. Ordering: Points keep raster scan order, which makes export reproducible.

Classes:
    Point: One sampled position with its color.
    PointCloud: Ordered, read-only collection of points.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


@dataclass(frozen=True)
class Point:
    position: Tuple[float, float, float]
    color: Tuple[float, float, float]


def _frozen_xyz(values: npt.ArrayLike, name: str) -> npt.NDArray[np.float64]:
    arr = np.array(values, dtype=np.float64, copy=True)
    if arr.size == 0:
        arr = arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected {name} of shape (N, 3), got {arr.shape}.")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class PointCloud:
    """
    Ordered set of colored points.

    positions: (N, 3) float64 array of x, y, z.
    colors: (N, 3) float64 array of r, g, b (nominally 0-1, unclamped).
    """
    positions: npt.NDArray[np.float64]
    colors: npt.NDArray[np.float64]

    def __post_init__(self) -> None:
        positions = _frozen_xyz(self.positions, "positions")
        colors = _frozen_xyz(self.colors, "colors")
        if positions.shape[0] != colors.shape[0]:
            raise ValueError(
                f"Point count mismatch: {positions.shape[0]} positions vs {colors.shape[0]} colors."
            )
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "colors", colors)

    @classmethod
    def empty(cls) -> PointCloud:
        return cls(np.zeros((0, 3)), np.zeros((0, 3)))

    def __len__(self) -> int:
        return int(self.positions.shape[0])

    def __iter__(self) -> Iterator[Point]:
        for pos, col in zip(self.positions, self.colors):
            yield Point(
                position=(float(pos[0]), float(pos[1]), float(pos[2])),
                color=(float(col[0]), float(col[1]), float(col[2])),
            )

    def __getitem__(self, index: int) -> Point:
        pos = self.positions[index]
        col = self.colors[index]
        return Point(
            position=(float(pos[0]), float(pos[1]), float(pos[2])),
            color=(float(col[0]), float(col[1]), float(col[2])),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PointCloud):
            return NotImplemented
        return (
            self.positions.shape == other.positions.shape
            and np.array_equal(self.positions, other.positions)
            and np.array_equal(self.colors, other.colors)
        )

    __hash__ = None  # type: ignore[assignment]

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def colors_as_bytes(self) -> npt.NDArray[np.uint8]:
        """Colors scaled by 255, floored, clamped to 0-255."""
        return np.clip(np.floor(self.colors * 255), 0, 255).astype(np.uint8)

    def bounds(self) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
        """Axis-aligned (min, max) corners. Raises ValueError on an empty cloud."""
        if self.is_empty:
            raise ValueError("An empty point cloud has no bounds.")
        lo = self.positions.min(axis=0)
        hi = self.positions.max(axis=0)
        return (tuple(float(v) for v in lo), tuple(float(v) for v in hi))
