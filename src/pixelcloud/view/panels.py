"""
Parameter Panel
===============
Side panel with one input per sampling parameter plus the particle shape and
viewport background.

The panel owns no state of its own. It builds a SamplingConfig from its inputs
and emits it; the controller decides whether a resample is needed.
"""
from __future__ import annotations

import logging

from PySide6.QtCore import Signal, Slot
from PySide6.QtWidgets import (
    QComboBox, QDoubleSpinBox, QGridLayout, QGroupBox, QLabel, QLineEdit,
    QSizePolicy, QSpinBox, QVBoxLayout, QWidget,
)

from pixelcloud.model.color import ColorMode
from pixelcloud.model.sampling import ConfigurationError, SamplingConfig
from pixelcloud.model.state import ParticleShape, ViewportMode

logger = logging.getLogger(__name__)

SHAPE_LABELS = {
    ParticleShape.SQUARE: "Square",
    ParticleShape.CIRCLE: "Circle",
    ParticleShape.DIAMOND: "Diamond",
}

VIEWPORT_LABELS = {
    ViewportMode.DARK: "Dark",
    ViewportMode.BRIGHT: "Bright",
    ViewportMode.TRANSPARENT: "Transparent",
}


class SamplingPanel(QWidget):
    """
    Inputs for a SamplingConfig.

    Signals:
        config_changed(object): A valid SamplingConfig built from the inputs.
        shape_changed(object): Selected ParticleShape.
        viewport_changed(object): Selected ViewportMode.
    """
    config_changed = Signal(object)
    shape_changed = Signal(object)
    viewport_changed = Signal(object)

    def __init__(
        self,
        config: SamplingConfig,
        shape: ParticleShape = ParticleShape.SQUARE,
        viewport: ViewportMode = ViewportMode.DARK,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)

        root = QVBoxLayout(self)

        # --- Geometry ---
        geo_box = QGroupBox(self.tr("Geometry"), self)
        root.addWidget(geo_box)
        self._geo = QGridLayout(geo_box)
        self._geo.setVerticalSpacing(8)
        self._row = 0

        self._spins: dict[str, QDoubleSpinBox] = {}
        self._add_spin("step", "Step:", min_value=1.0, max_value=32.0, step=1.0, decimals=0, suffix="px")
        self._add_spin("particle_size", "Particle size:", min_value=0.1, max_value=10.0, step=0.1)
        self._add_spin("z_extrusion", "Z extrusion:", min_value=0.0, max_value=2000.0, step=10.0, decimals=0)

        self.alpha_spin = QSpinBox(geo_box)
        self.alpha_spin.setRange(0, 255)
        self.alpha_spin.setKeyboardTracking(False)
        self._add_row("Alpha threshold:", self.alpha_spin)

        # --- Appearance ---
        look_box = QGroupBox(self.tr("Appearance"), self)
        root.addWidget(look_box)
        self._geo = QGridLayout(look_box)
        self._geo.setVerticalSpacing(8)
        self._row = 0

        self.mode_combo = QComboBox(look_box)
        for mode in ColorMode:
            self.mode_combo.addItem(mode.label, userData=mode.value)
        self._add_row("Color mode:", self.mode_combo)

        self._add_spin("brightness", "Brightness:", min_value=0.0, max_value=3.0, step=0.05, decimals=2)

        self.tint_edit = QLineEdit(look_box)
        self.tint_edit.setPlaceholderText("#rrggbb")
        self._add_row("Tint:", self.tint_edit)

        self.shape_combo = QComboBox(look_box)
        for key, label in SHAPE_LABELS.items():
            self.shape_combo.addItem(self.tr(label), userData=key.value)
        self._add_row("Shape:", self.shape_combo)

        self.viewport_combo = QComboBox(look_box)
        for key, label in VIEWPORT_LABELS.items():
            self.viewport_combo.addItem(self.tr(label), userData=key.value)
        self._add_row("Viewport:", self.viewport_combo)

        root.addStretch()

        self.load_config(config, shape, viewport)

        # wiring
        for w in self._spins.values():
            w.valueChanged.connect(self._on_params_changed)
        self.alpha_spin.valueChanged.connect(self._on_params_changed)
        self.mode_combo.currentIndexChanged.connect(self._on_params_changed)
        self.tint_edit.editingFinished.connect(self._on_params_changed)
        self.shape_combo.currentIndexChanged.connect(self._on_shape_changed)
        self.viewport_combo.currentIndexChanged.connect(self._on_viewport_changed)

    # ---- utilities ----

    def _add_row(self, label: str, widget: QWidget) -> None:
        self._geo.addWidget(QLabel(self.tr(label), self), self._row, 0)
        widget.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self._geo.addWidget(widget, self._row, 1)
        self._row += 1

    def _add_spin(
        self,
        key: str,
        label: str,
        *,
        min_value: float,
        max_value: float,
        step: float,
        decimals: int = 2,
        suffix: str = "",
    ) -> QDoubleSpinBox:
        w = QDoubleSpinBox(self)
        w.setRange(min_value, max_value)
        w.setSingleStep(step)
        w.setDecimals(decimals)
        w.setKeyboardTracking(False)
        if suffix:
            w.setSuffix(f" {suffix}")
        self._add_row(label, w)
        self._spins[key] = w
        return w

    # ---- public API ----

    def load_config(
        self,
        config: SamplingConfig,
        shape: ParticleShape = ParticleShape.SQUARE,
        viewport: ViewportMode = ViewportMode.DARK,
    ) -> None:
        """Show the given values without emitting any change signal."""
        widgets = [*self._spins.values(), self.alpha_spin, self.mode_combo,
                   self.tint_edit, self.shape_combo, self.viewport_combo]
        for w in widgets:
            w.blockSignals(True)
        try:
            self._spins["step"].setValue(config.step)
            self._spins["particle_size"].setValue(config.particle_size)
            self._spins["z_extrusion"].setValue(config.z_extrusion)
            self._spins["brightness"].setValue(config.brightness)
            self.alpha_spin.setValue(config.alpha_threshold)
            self.mode_combo.setCurrentIndex(self.mode_combo.findData(config.color_mode.value))
            self.tint_edit.setText(config.tint.to_hex())
            self.shape_combo.setCurrentIndex(self.shape_combo.findData(ParticleShape(shape).value))
            self.viewport_combo.setCurrentIndex(self.viewport_combo.findData(ViewportMode(viewport).value))
        finally:
            for w in widgets:
                w.blockSignals(False)

    def config(self) -> SamplingConfig:
        """
        Build a config from the current inputs.

        Raises:
            ConfigurationError: If an input (e.g. the tint) is invalid.
        """
        return SamplingConfig.from_dict({
            "step": self._spins["step"].value(),
            "particle_size": self._spins["particle_size"].value(),
            "z_extrusion": self._spins["z_extrusion"].value(),
            "alpha_threshold": self.alpha_spin.value(),
            "color_mode": self.mode_combo.currentData(),
            "brightness": self._spins["brightness"].value(),
            "tint": self.tint_edit.text().strip(),
        })

    def shape(self) -> ParticleShape:
        return ParticleShape(self.shape_combo.currentData())

    def viewport(self) -> ViewportMode:
        return ViewportMode(self.viewport_combo.currentData())

    # ---- slots ----

    @Slot()
    def _on_params_changed(self) -> None:
        try:
            config = self.config()
        except ConfigurationError as e:
            logger.warning(f"Ignoring invalid parameters: {e}")
            return
        self.config_changed.emit(config)

    @Slot()
    def _on_shape_changed(self) -> None:
        self.shape_changed.emit(self.shape())

    @Slot()
    def _on_viewport_changed(self) -> None:
        self.viewport_changed.emit(self.viewport())
