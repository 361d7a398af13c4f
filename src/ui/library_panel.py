"""
Library Panel - "My Slideshows": save, load, delete and start new slideshows
"""
from datetime import datetime
from typing import List, Optional

from PyQt6.QtWidgets import (
    QGroupBox, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit,
    QListWidget, QListWidgetItem, QWidget, QFrame
)
from PyQt6.QtCore import Qt, pyqtSignal, QSize
from PyQt6.QtGui import QFont

from config import MAX_SAVED_SLIDESHOWS
from models.project import ProjectSummary


def format_saved_time(saved_at_ms: int, now: Optional[datetime] = None) -> str:
    """Human-readable relative save time"""
    if not saved_at_ms:
        return ""
    dt = datetime.fromtimestamp(saved_at_ms / 1000)
    now = now or datetime.now()
    diff = now - dt
    if diff.days < 0:
        return dt.strftime("%Y-%m-%d %H:%M")
    if diff.days == 0:
        hours = diff.seconds // 3600
        if hours == 0:
            minutes = diff.seconds // 60
            if minutes == 0:
                return "just now"
            return f"{minutes} min ago"
        return f"{hours} h ago"
    if diff.days == 1:
        return "yesterday"
    if diff.days < 7:
        return f"{diff.days} days ago"
    return dt.strftime("%Y-%m-%d")


class SlideshowListItem(QWidget):
    """Row widget: name, save time and a delete button"""

    delete_clicked = pyqtSignal(str)

    def __init__(self, summary: ProjectSummary, active: bool = False, parent=None):
        super().__init__(parent)
        self.project_id = summary.id
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setStyleSheet("background: transparent;")

        layout = QHBoxLayout(self)
        layout.setContentsMargins(10, 6, 6, 6)
        layout.setSpacing(8)

        text_layout = QVBoxLayout()
        text_layout.setSpacing(2)
        title_label = QLabel(summary.name + ("  (open)" if active else ""))
        title_font = QFont()
        title_font.setBold(True)
        title_label.setFont(title_font)
        text_layout.addWidget(title_label)

        time_label = QLabel(f"Saved {format_saved_time(summary.saved_at)}")
        time_label.setProperty("class", "hint")
        text_layout.addWidget(time_label)
        layout.addLayout(text_layout)
        layout.addStretch()

        delete_btn = QPushButton("Delete")
        delete_btn.setProperty("class", "danger")
        delete_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        delete_btn.clicked.connect(lambda: self.delete_clicked.emit(self.project_id))
        layout.addWidget(delete_btn)


class LibraryPanel(QGroupBox):
    """Saved slideshows list with save/new controls"""

    save_requested = pyqtSignal(str)  # name
    load_requested = pyqtSignal(str)  # project id
    delete_requested = pyqtSignal(str)  # project id
    new_requested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__("My Slideshows", parent)
        self._active_id: Optional[str] = None
        self._create_ui()

    def _create_ui(self):
        layout = QVBoxLayout(self)
        layout.setSpacing(8)

        save_row = QHBoxLayout()
        self.name_edit = QLineEdit()
        self.name_edit.setPlaceholderText("Slideshow name")
        save_row.addWidget(self.name_edit, 1)

        self.save_btn = QPushButton("Save")
        self.save_btn.setProperty("class", "primary")
        self.save_btn.clicked.connect(self._on_save)
        save_row.addWidget(self.save_btn)
        layout.addLayout(save_row)

        self.limit_label = QLabel(f"You can keep up to {MAX_SAVED_SLIDESHOWS} slideshows.")
        self.limit_label.setProperty("class", "hint")
        layout.addWidget(self.limit_label)

        self.project_list = QListWidget()
        self.project_list.setFrameShape(QFrame.Shape.NoFrame)
        self.project_list.setVerticalScrollMode(QListWidget.ScrollMode.ScrollPerPixel)
        self.project_list.itemClicked.connect(self._on_item_clicked)
        layout.addWidget(self.project_list, 1)

        self.empty_label = QLabel("No saved slideshows yet.")
        self.empty_label.setProperty("class", "hint")
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.empty_label)

        self.new_btn = QPushButton("New Slideshow")
        self.new_btn.clicked.connect(self.new_requested)
        layout.addWidget(self.new_btn)

    def set_name(self, name: str):
        self.name_edit.setText(name)

    def set_busy(self, busy: bool):
        self.save_btn.setEnabled(not busy)
        self.project_list.setEnabled(not busy)

    def set_summaries(self, summaries: List[ProjectSummary], active_id: Optional[str] = None):
        """Rebuild the list"""
        self._active_id = active_id
        self.project_list.clear()
        self.empty_label.setVisible(not summaries)
        self.project_list.setVisible(bool(summaries))

        for summary in summaries:
            item = QListWidgetItem()
            item.setSizeHint(QSize(0, 56))
            item.setData(Qt.ItemDataRole.UserRole, summary.id)
            widget = SlideshowListItem(summary, active=summary.id == active_id)
            widget.delete_clicked.connect(self.delete_requested.emit)
            self.project_list.addItem(item)
            self.project_list.setItemWidget(item, widget)

    def _on_save(self):
        name = self.name_edit.text().strip() or "Untitled Slideshow"
        self.save_requested.emit(name)

    def _on_item_clicked(self, item: QListWidgetItem):
        project_id = item.data(Qt.ItemDataRole.UserRole)
        if project_id:
            self.load_requested.emit(project_id)
