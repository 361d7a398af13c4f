"""
Settings Panel - Slide interval, transition style and display options
"""
from typing import Optional

from PyQt6.QtWidgets import (
    QGroupBox, QVBoxLayout, QFormLayout, QComboBox, QCheckBox, QLabel
)
from PyQt6.QtCore import pyqtSignal

from config import INTERVAL_CHOICES
from core.captioner import CaptionStatus
from models.settings import PlaybackSettings, TransitionStyle


CAPTION_STATUS_TEXT = {
    CaptionStatus.IDLE: "",
    CaptionStatus.GENERATING: "Generating captions...",
    CaptionStatus.DONE: "Captions ready.",
    CaptionStatus.ERROR: "Captions unavailable.",
}


class SettingsPanel(QGroupBox):
    """
    Editor controls for PlaybackSettings.

    The panel only reports user choices; the editor decides and the panel
    is refreshed from set_settings().
    """

    interval_selected = pyqtSignal(int)
    style_selected = pyqtSignal(object)
    show_clock_toggled = pyqtSignal(bool)
    captions_toggled = pyqtSignal(bool)

    def __init__(self, parent=None):
        super().__init__("Slideshow Settings", parent)
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()
        form.setSpacing(8)

        self.combo_interval = QComboBox()
        for seconds in INTERVAL_CHOICES:
            self.combo_interval.addItem(f"{seconds} seconds", seconds)
        self.combo_interval.activated.connect(self._on_interval_activated)
        form.addRow("Slide speed:", self.combo_interval)

        self.combo_style = QComboBox()
        for style in TransitionStyle:
            self.combo_style.addItem(style.label, style)
        self.combo_style.activated.connect(
            lambda index: self.style_selected.emit(self.combo_style.itemData(index))
        )
        form.addRow("Transition:", self.combo_style)
        layout.addLayout(form)

        self.check_clock = QCheckBox("Show date and time")
        self.check_clock.toggled.connect(self.show_clock_toggled.emit)
        layout.addWidget(self.check_clock)

        self.check_captions = QCheckBox("Smart captions (AI)")
        self.check_captions.setToolTip("Describe each image with a short caption during playback")
        self.check_captions.toggled.connect(self.captions_toggled.emit)
        layout.addWidget(self.check_captions)

        self.caption_status_label = QLabel("")
        self.caption_status_label.setProperty("class", "hint")
        layout.addWidget(self.caption_status_label)

        self.notice_label = QLabel("")
        self.notice_label.setProperty("class", "notice")
        self.notice_label.setWordWrap(True)
        self.notice_label.hide()
        layout.addWidget(self.notice_label)

    def set_settings(self, settings: PlaybackSettings):
        """Show *settings* without re-emitting the change signals"""
        widgets = (self.combo_interval, self.combo_style, self.check_clock, self.check_captions)
        for widget in widgets:
            widget.blockSignals(True)
        try:
            self._select_interval(settings.interval_seconds)
            self.combo_style.setCurrentIndex(self.combo_style.findData(settings.transition_style))
            self.check_clock.setChecked(settings.show_clock)
            self.check_captions.setChecked(settings.captions_enabled)
        finally:
            for widget in widgets:
                widget.blockSignals(False)

    def set_notice(self, notice: Optional[str]):
        self.notice_label.setText(notice or "")
        self.notice_label.setVisible(bool(notice))

    def set_caption_status(self, status: CaptionStatus):
        self.caption_status_label.setText(CAPTION_STATUS_TEXT.get(status, ""))

    def _select_interval(self, seconds: int):
        index = self.combo_interval.findData(seconds)
        if index < 0:
            # Auto-adjusted values are not among the fixed choices
            self._drop_custom_entries()
            self.combo_interval.addItem(f"{seconds} seconds (auto)", seconds)
            index = self.combo_interval.count() - 1
        else:
            self._drop_custom_entries()
            index = self.combo_interval.findData(seconds)
        self.combo_interval.setCurrentIndex(index)

    def _drop_custom_entries(self):
        for index in range(self.combo_interval.count() - 1, -1, -1):
            if self.combo_interval.itemData(index) not in INTERVAL_CHOICES:
                self.combo_interval.removeItem(index)

    def _on_interval_activated(self, index: int):
        seconds = self.combo_interval.itemData(index)
        if seconds is not None:
            self.interval_selected.emit(int(seconds))
