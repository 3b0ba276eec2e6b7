"""
Background Workers (Threading)
==============================
This module contains the QThread subclass that samples rasters off the GUI
thread, and the controller that orders its results.

Why is this file needed?
------------------------
1. Responsiveness: Sampling a large raster on the main thread would freeze the
   viewport while a slider is dragged. Workers push the pass to a background
   thread.
2. Ordering: Several passes can be in flight at once and they may finish in
   any order. Every request carries a sequence number from the store, and only
   the newest one is allowed to replace the cloud.

Classes:
    SamplingWorker: Runs one sampling pass.
    SamplingController: Issues requests and publishes their results.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from PySide6.QtCore import QObject, QThread, QTimer, Signal

from pixelcloud.config import RESAMPLE_DEBOUNCE_MS
from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.raster import Raster
from pixelcloud.model.sampling import SamplingConfig, sample
from pixelcloud.model.state import ParticleShape, ViewerState

logger = logging.getLogger(__name__)


class SamplingWorker(QThread):
    # (sequence number, PointCloud)
    sampled = Signal(int, object)
    # (sequence number, message)
    error_occurred = Signal(int, str)

    def __init__(self, seq: int, raster: Raster, config: SamplingConfig) -> None:
        super().__init__()
        self.seq = seq
        self.raster = raster
        self.config = config
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        try:
            logger.debug(f"Sampling request #{self.seq} started in background thread.")
            cloud = sample(self.raster, self.config)
        except Exception as e:
            logger.error(f"Error in SamplingWorker #{self.seq}: {e}")
            if not self._cancelled:
                self.error_occurred.emit(self.seq, str(e))
            return

        if self._cancelled:
            logger.debug(f"Sampling request #{self.seq} was superseded, discarding result.")
            return

        self.sampled.emit(self.seq, cloud)

    def cancel(self) -> None:
        self._cancelled = True


class SamplingController(QObject):
    """
    Owns the path from 'parameters changed' to 'new cloud in the store'.

    Parameter edits arrive in bursts (slider drags). `schedule_config` stores
    the newest parameter set and restarts a short single-shot timer, so a burst
    collapses into one background request.

    Signals:
        cloud_changed(object): New PointCloud, or None when the raster was cleared.
        shape_changed(object): ParticleShape to restyle the current cloud with.
        sampling_failed(str): The newest request failed.
    """
    cloud_changed = Signal(object)
    shape_changed = Signal(object)
    sampling_failed = Signal(str)

    def __init__(
        self,
        state: ViewerState,
        parent: Optional[QObject] = None,
        debounce_ms: int = RESAMPLE_DEBOUNCE_MS,
    ) -> None:
        super().__init__(parent)
        self.state = state
        self._workers: List[SamplingWorker] = []

        self._resample_timer = QTimer(self)
        self._resample_timer.setSingleShot(True)
        self._resample_timer.setInterval(debounce_ms)
        self._resample_timer.timeout.connect(self.request)

    @property
    def pending(self) -> int:
        return len(self._workers)

    @property
    def resample_scheduled(self) -> bool:
        return self._resample_timer.isActive()

    # --- PUBLIC API ---

    def schedule_config(self, config: SamplingConfig) -> bool:
        """
        Store a new parameter set and resample after the debounce interval.

        Returns:
            True if a resample was scheduled, False if nothing changed.
        """
        config.validate()
        if not self.state.needs_resample(config) and self.state.cloud is not None:
            return False
        self.state.config = config
        self._resample_timer.start()
        return True

    def set_shape(self, shape: ParticleShape) -> None:
        """Change the particle primitive. The cloud is restyled, not resampled."""
        if shape == self.state.shape:
            return
        self.state.shape = shape
        self.shape_changed.emit(shape)

    def set_raster(self, raster: Optional[Raster], source_name: str = "Untitled") -> Optional[int]:
        """Swap the source raster and start sampling it."""
        self._resample_timer.stop()
        self.state.set_raster(raster, source_name)
        return self.request()

    def shutdown(self, timeout_ms: int = 10000) -> bool:
        """Stop pending work before the owner goes away. Returns False on timeout."""
        self._resample_timer.stop()
        self._cancel_superseded()
        return self.wait_all(timeout_ms)

    def update_config(self, config: SamplingConfig, background: bool = True) -> Optional[int]:
        """
        Store a new parameter set and resample if it differs from the current one.

        Returns:
            The request sequence number, or None if nothing had to be resampled.
        """
        config.validate()
        if not self.state.needs_resample(config) and self.state.cloud is not None:
            return None
        self.state.config = config
        if background:
            return self.request()
        self.request_sync()
        return self.state.store.applied_request

    def request(self) -> Optional[int]:
        """Start a background pass for the current raster and config."""
        raster = self.state.raster
        if raster is None:
            self._clear()
            return None

        seq = self.state.store.next_request()
        self._cancel_superseded()

        worker = self.make_worker(seq, raster, self.state.config)
        self._workers.append(worker)
        worker.finished.connect(self._reap_finished)
        worker.start()
        logger.debug(f"Sampling request #{seq} dispatched ({self.pending} in flight).")
        return seq

    def request_sync(self) -> Optional[PointCloud]:
        """Run a pass on the calling thread through the same ordering rules."""
        raster = self.state.raster
        if raster is None:
            self._clear()
            return None

        seq = self.state.store.next_request()
        self._cancel_superseded()
        try:
            cloud = sample(raster, self.state.config)
        except Exception as e:
            self.on_error(seq, str(e))
            raise
        self.on_sampled(seq, cloud)
        return self.state.store.snapshot()

    def make_worker(self, seq: int, raster: Raster, config: SamplingConfig) -> SamplingWorker:
        worker = SamplingWorker(seq, raster, config)
        worker.sampled.connect(self.on_sampled)
        worker.error_occurred.connect(self.on_error)
        return worker

    def wait_all(self, timeout_ms: int = 10000) -> bool:
        """Block until every running worker finished. Returns False on timeout."""
        ok = True
        for worker in list(self._workers):
            ok = worker.wait(timeout_ms) and ok
        return ok

    # --- SLOTS ---

    def on_sampled(self, seq: int, cloud: PointCloud) -> None:
        if self.state.store.publish(seq, cloud):
            self.cloud_changed.emit(cloud)
        else:
            logger.warning(f"Ignoring result of superseded sampling request #{seq}.")

    def on_error(self, seq: int, message: str) -> None:
        if self.state.store.is_current(seq):
            logger.error(f"Sampling request #{seq} failed: {message}")
            self.sampling_failed.emit(message)

    # --- INTERNALS ---

    def _cancel_superseded(self) -> None:
        for worker in self._workers:
            worker.cancel()

    def _reap_finished(self) -> None:
        for worker in [w for w in self._workers if w.isFinished()]:
            self._workers.remove(worker)
            worker.deleteLater()

    def _clear(self) -> None:
        self._cancel_superseded()
        self.state.store.clear()
        self.cloud_changed.emit(None)
