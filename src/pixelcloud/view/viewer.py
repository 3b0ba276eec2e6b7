"""
Viewer Window
=============
Embeds the PyVista render window in Qt next to the parameter panel and keeps
the view in sync with the store.

Why is this file needed?
------------------------
1. Wiring: It connects `SamplingController.cloud_changed` to the renderer, so
   every accepted cloud replaces the displayed instances exactly once.
2. Lifetime: The main window stops the background workers before the render
   window is torn down.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import QApplication, QDockWidget, QMainWindow, QVBoxLayout, QWidget
from pyvistaqt import QtInteractor

from pixelcloud.controller.workers import SamplingController
from pixelcloud.model.point_cloud import PointCloud
from pixelcloud.model.sampling import SamplingConfig
from pixelcloud.model.state import ParticleShape, ViewerState, ViewportMode
from pixelcloud.view.panels import SamplingPanel
from pixelcloud.view.plotter import PointCloudRenderer

logger = logging.getLogger(__name__)


class PointCloudWidget(QWidget):
    """
    Render area showing the current cloud of a SamplingController.

    `plotter` defaults to a new pyvistaqt QtInteractor.
    """

    def __init__(
        self,
        controller: SamplingController,
        parent: Optional[QWidget] = None,
        plotter: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.controller = controller
        self.state = controller.state

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        if plotter is None:
            plotter = QtInteractor(self)
        self.plotter = plotter
        layout.addWidget(self.plotter)

        self.renderer = PointCloudRenderer(self.plotter, self.state.viewport)
        self._first_cloud = True

        self.controller.cloud_changed.connect(self.on_cloud_changed)
        self.controller.shape_changed.connect(self.on_shape_changed)
        self.controller.sampling_failed.connect(self.on_sampling_failed)

    # --- PUBLIC API ---

    def set_config(self, config: SamplingConfig) -> bool:
        return self.controller.schedule_config(config)

    def set_shape(self, shape: ParticleShape) -> None:
        self.controller.set_shape(shape)

    def set_viewport(self, viewport: ViewportMode) -> None:
        self.state.viewport = viewport
        self.renderer.set_viewport(viewport)
        self.plotter.render()

    def refresh(self) -> None:
        self.controller.request()

    def close_plotter(self) -> None:
        self.renderer.clear(render=False)
        self.plotter.close()

    # --- SLOTS ---

    def on_cloud_changed(self, cloud: Optional[PointCloud]) -> None:
        self.renderer.show_cloud(
            cloud,
            shape=self.state.shape,
            particle_size=self.state.config.particle_size,
            reset_camera=self._first_cloud and cloud is not None,
        )
        if cloud is not None and not cloud.is_empty:
            self._first_cloud = False

    def on_shape_changed(self, shape: ParticleShape) -> None:
        """Restyle the current cloud without resampling."""
        self.on_cloud_changed(self.state.cloud)

    def on_sampling_failed(self, message: str) -> None:
        logger.error(f"Point cloud could not be rebuilt: {message}")


class ViewerWindow(QMainWindow):
    def __init__(self, state: ViewerState, plotter: Optional[QWidget] = None) -> None:
        super().__init__()
        self.setWindowTitle(f"pixelcloud - {state.source_name}")
        self.resize(1200, 800)

        self.state = state
        self.controller = SamplingController(state, self)

        self.view = PointCloudWidget(self.controller, self, plotter=plotter)
        self.setCentralWidget(self.view)

        self.panel = SamplingPanel(state.config, state.shape, state.viewport, self)
        dock = QDockWidget(self.tr("Parameters"), self)
        dock.setWidget(self.panel)
        dock.setFeatures(QDockWidget.DockWidgetFeature.NoDockWidgetFeatures)
        self.addDockWidget(Qt.DockWidgetArea.LeftDockWidgetArea, dock)

        self.panel.config_changed.connect(self.view.set_config)
        self.panel.shape_changed.connect(self.view.set_shape)
        self.panel.viewport_changed.connect(self.view.set_viewport)

    def closeEvent(self, event: QCloseEvent) -> None:
        """Stop the workers first; a running QThread must not be destroyed."""
        if not self.controller.shutdown():
            logger.warning("Background sampling did not finish before shutdown.")
        self.view.close_plotter()
        event.accept()


def run_viewer(state: ViewerState) -> int:
    """Start the Qt event loop with a single viewer window."""
    app = QApplication.instance() or QApplication(sys.argv)

    window = ViewerWindow(state)
    window.show()

    window.view.refresh()
    return app.exec()
