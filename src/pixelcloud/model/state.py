"""
Viewer State (Data Model)
=========================
This module defines the central data structures for a running viewer session.

Why is this file needed?
------------------------
1. State Management: It holds the current raster, the sampling parameters and
   the latest point cloud in one place.
2. Ordering: Sampling may run in the background. The store hands out request
   sequence numbers and only accepts the result of the newest request, so a
   slow, superseded pass can never overwrite a fresher cloud.
3. Decoupling: Views read snapshots from the store; controllers write to it.

Classes:
    ParticleShape: Primitive drawn for each point.
    ViewportMode: Viewport background.
    PointCloudStore: Single-writer, multi-reader holder of the current cloud.
    ViewerState: The main container class.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging
import threading
from typing import Optional

from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.raster import Raster
from pixelcloud.model.sampling import SamplingConfig

logger = logging.getLogger(__name__)


class ParticleShape(StrEnum):
    """Primitive instanced per point by the renderer."""
    SQUARE = "square"
    CIRCLE = "circle"
    DIAMOND = "diamond"


class ViewportMode(StrEnum):
    """Background the viewport is drawn on."""
    DARK = "dark"
    BRIGHT = "bright"
    TRANSPARENT = "transparent"


class PointCloudStore:
    """
    Holds the most recent point cloud.

    Writers call `next_request()` before sampling and `publish()` with the
    same number afterwards. Readers call `snapshot()`; clouds are immutable,
    so a snapshot stays valid while the next pass runs.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cloud: Optional[PointCloud] = None
        self._issued: int = 0
        self._applied: int = 0

    @property
    def latest_request(self) -> int:
        with self._lock:
            return self._issued

    @property
    def applied_request(self) -> int:
        """Sequence number of the cloud currently held (0 if none was published)."""
        with self._lock:
            return self._applied

    def next_request(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def is_current(self, seq: int) -> bool:
        with self._lock:
            return seq == self._issued

    def publish(self, seq: int, cloud: PointCloud) -> bool:
        """
        Replace the cloud if `seq` is the newest issued request.

        Returns:
            True if the cloud was applied, False if it was stale.
        """
        with self._lock:
            if seq != self._issued or seq <= self._applied:
                logger.debug(f"Dropping stale point cloud #{seq} (latest issued #{self._issued}).")
                return False
            self._cloud = cloud
            self._applied = seq

        logger.debug(f"Point cloud #{seq} applied ({len(cloud)} points).")
        return True

    def snapshot(self) -> Optional[PointCloud]:
        with self._lock:
            return self._cloud

    def clear(self) -> None:
        """
        Discard the cloud and invalidate any request still in flight.
        """
        with self._lock:
            self._cloud = None
            self._issued += 1
            self._applied = self._issued
        logger.debug("Point cloud store cleared.")


@dataclass
class ViewerState:
    """
    Holds everything a viewer session needs to (re)build and show the cloud.
    Pass this instance to your Controllers and Views.
    """
    source_name: str = "Untitled"
    raster: Optional[Raster] = None

    config: SamplingConfig = field(default_factory=SamplingConfig)
    shape: ParticleShape = ParticleShape.SQUARE
    viewport: ViewportMode = ViewportMode.DARK

    store: PointCloudStore = field(default_factory=PointCloudStore)

    @property
    def cloud(self) -> Optional[PointCloud]:
        return self.store.snapshot()

    def set_raster(self, raster: Optional[Raster], source_name: str = "Untitled") -> None:
        """
        Replace the source raster.

        A different raster invalidates the stored cloud and every request still
        in flight, since they were sampled from the old pixels.
        """
        changed = raster is None or self.raster is None or raster != self.raster
        self.raster = raster
        self.source_name = source_name
        if changed:
            self.store.clear()

    def needs_resample(self, new_config: SamplingConfig) -> bool:
        """Shape changes only restyle the instances; any config change resamples."""
        return new_config != self.config

    def reset(self) -> None:
        """Clear all data for a new session"""
        self.source_name = "Untitled"
        self.raster = None
        self.config = SamplingConfig()
        self.shape = ParticleShape.SQUARE
        self.viewport = ViewportMode.DARK
        self.store.clear()
        logger.info("Viewer state has been reset.")
