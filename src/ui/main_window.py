"""
Main Window - Slideshow editor: media, song, settings and saved slideshows
"""
import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QLabel, QFileDialog, QSplitter, QGroupBox, QMessageBox
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence

from config import MAX_IMAGES, MAX_VIDEOS, MAX_VIDEO_DURATION
from core.editor import SlideshowEditor
from runtime_config import get_config
from storage.project_store import ProjectLibrary, ProjectStore, StoreError
from .library_panel import LibraryPanel
from .media_grid import MediaGridWidget
from .player_window import SlideshowWindow
from .settings_panel import SettingsPanel

logger = logging.getLogger(__name__)

MEDIA_FILTER = (
    "Images and videos (*.png *.jpg *.jpeg *.gif *.bmp *.webp *.mp4 *.mov *.webm *.m4v *.avi);;"
    "All Files (*)"
)
AUDIO_FILTER = "Audio (*.mp3 *.wav *.m4a *.aac *.ogg *.flac);;All Files (*)"


class MainWindow(QMainWindow):
    """Main application window"""

    def __init__(self, editor: Optional[SlideshowEditor] = None, library: Optional[ProjectLibrary] = None):
        super().__init__()
        self.setWindowTitle("SongSlides")
        self.setMinimumSize(1100, 720)

        self.editor = editor or SlideshowEditor(parent=self)
        self.library = library or ProjectLibrary(ProjectStore(get_config().store_dir), parent=self)
        self.player: Optional[SlideshowWindow] = None

        self._setup_ui()
        self._setup_menu_bar()
        self._connect_editor()

        self._refresh_media()
        self._refresh_audio()
        self._refresh_settings()
        self._refresh_library_safely()

    def _setup_menu_bar(self):
        """Setup the menu bar"""
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")

        new_action = QAction("&New Slideshow", self)
        new_action.setShortcut(QKeySequence.StandardKey.New)
        new_action.triggered.connect(self._new_slideshow)
        file_menu.addAction(new_action)

        save_action = QAction("&Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(lambda: self._save(self.library_panel.name_edit.text().strip()
                                                         or self.editor.active_name))
        file_menu.addAction(save_action)

        file_menu.addSeparator()
        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        show_menu = menu_bar.addMenu("&Slideshow")
        add_action = QAction("&Add Images or Video...", self)
        add_action.triggered.connect(self._add_media)
        show_menu.addAction(add_action)

        audio_action = QAction("Select S&ong...", self)
        audio_action.triggered.connect(self._select_audio)
        show_menu.addAction(audio_action)

        show_menu.addSeparator()
        self.play_action = QAction("&Play", self)
        self.play_action.setShortcut(QKeySequence("F5"))
        self.play_action.triggered.connect(self._play)
        show_menu.addAction(self.play_action)

    def _setup_ui(self):
        """Setup the main UI layout"""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        main_layout.addLayout(self._create_toolbar())

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self._create_left_panel())
        splitter.addWidget(self._create_right_panel())
        splitter.setSizes([700, 400])
        main_layout.addWidget(splitter, 1)

        self.statusBar().showMessage("Ready")

    def _create_toolbar(self) -> QHBoxLayout:
        layout = QHBoxLayout()

        self.btn_add = QPushButton("Add Images / Video")
        self.btn_add.clicked.connect(self._add_media)
        layout.addWidget(self.btn_add)

        self.btn_audio = QPushButton("Select Song")
        self.btn_audio.clicked.connect(self._select_audio)
        layout.addWidget(self.btn_audio)

        layout.addStretch()

        self.btn_play = QPushButton("Play Slideshow")
        self.btn_play.setProperty("class", "primary")
        self.btn_play.clicked.connect(self._play)
        layout.addWidget(self.btn_play)
        return layout

    def _create_left_panel(self) -> QWidget:
        panel = QGroupBox("Slides")
        layout = QVBoxLayout(panel)

        self.media_hint = QLabel(
            f"Up to {MAX_IMAGES} images and {MAX_VIDEOS} video (max {MAX_VIDEO_DURATION}s). "
            "Drag to reorder; Delete removes the selected slide."
        )
        self.media_hint.setProperty("class", "hint")
        self.media_hint.setWordWrap(True)
        layout.addWidget(self.media_hint)

        self.media_grid = MediaGridWidget()
        self.media_grid.move_requested.connect(self._move_media)
        self.media_grid.remove_requested.connect(lambda item_id: self.editor.remove_media(item_id))
        self.media_grid.files_dropped.connect(lambda paths: self.editor.import_files(paths))
        layout.addWidget(self.media_grid, 1)

        self.media_count_label = QLabel("")
        self.media_count_label.setProperty("class", "hint")
        layout.addWidget(self.media_count_label)

        audio_row = QHBoxLayout()
        self.audio_label = QLabel("No song selected")
        audio_row.addWidget(self.audio_label, 1)
        self.btn_clear_audio = QPushButton("Remove Song")
        self.btn_clear_audio.clicked.connect(self.editor.clear_audio)
        audio_row.addWidget(self.btn_clear_audio)
        layout.addLayout(audio_row)
        return panel

    def _create_right_panel(self) -> QWidget:
        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(0, 0, 0, 0)

        self.settings_panel = SettingsPanel()
        self.settings_panel.interval_selected.connect(lambda value: self.editor.set_interval(value))
        self.settings_panel.style_selected.connect(self.editor.set_transition_style)
        self.settings_panel.show_clock_toggled.connect(self.editor.set_show_clock)
        self.settings_panel.captions_toggled.connect(self.editor.set_captions_enabled)
        layout.addWidget(self.settings_panel)

        self.library_panel = LibraryPanel()
        self.library_panel.save_requested.connect(self._save)
        self.library_panel.load_requested.connect(self._load)
        self.library_panel.delete_requested.connect(self._delete)
        self.library_panel.new_requested.connect(self._new_slideshow)
        layout.addWidget(self.library_panel, 1)
        return panel

    def _connect_editor(self):
        self.editor.media_changed.connect(self._refresh_media)
        self.editor.audio_changed.connect(self._refresh_audio)
        self.editor.settings_changed.connect(self._refresh_settings)
        self.editor.notice_changed.connect(self.settings_panel.set_notice)
        self.editor.caption_status_changed.connect(self.settings_panel.set_caption_status)
        self.editor.message.connect(self._show_message)
        self.library.changed.connect(self._refresh_library)

    # -- Refresh -----------------------------------------------------------

    def _refresh_media(self):
        self.media_grid.set_media(self.editor.media)
        self.media_count_label.setText(
            f"{self.editor.media.image_count}/{MAX_IMAGES} images, "
            f"{self.editor.media.video_count}/{MAX_VIDEOS} video"
        )
        self._update_play_state()

    def _refresh_audio(self):
        audio = self.editor.audio
        self.audio_label.setText(f"Song: {audio.display_name}" if audio else "No song selected")
        self.btn_clear_audio.setEnabled(audio is not None)
        self._update_play_state()

    def _refresh_settings(self):
        self.settings_panel.set_settings(self.editor.settings)

    def _refresh_library(self):
        self.library_panel.set_summaries(self.library.summaries, self.editor.active_project_id)

    def _refresh_library_safely(self):
        try:
            self.library.refresh()
        except StoreError as e:
            logger.warning("Could not list saved slideshows: %s", e)
        self.library_panel.set_name(self.editor.active_name)

    def _update_play_state(self):
        ready = self.editor.is_ready_to_play
        self.btn_play.setEnabled(ready)
        self.play_action.setEnabled(ready)

    def _show_message(self, message: str):
        self.statusBar().showMessage(message, 8000)
        QMessageBox.warning(self, "SongSlides", message)

    # -- Media -------------------------------------------------------------

    def _add_media(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Add Images or Video", "", MEDIA_FILTER)
        if paths:
            self.editor.import_files(paths)

    def _select_audio(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select Song", "", AUDIO_FILTER)
        if path:
            self.editor.select_audio(path)

    def _move_media(self, source: int, target: int):
        self.editor.move_media(source, target)

    # -- Playback ----------------------------------------------------------

    def _play(self):
        if self.player is not None:
            return
        player = SlideshowWindow()
        try:
            session = self.editor.create_session(player.audio_sink, player.video_sink, parent=player)
        except ValueError as e:
            player.deleteLater()
            QMessageBox.information(self, "SongSlides", str(e))
            return

        player.attach(session)
        player.closed.connect(self._on_player_closed)
        self.player = player
        player.showFullScreen()
        try:
            session.start()
        except OSError as e:
            logger.error("Could not start slideshow: %s", e)
            player.close()
            QMessageBox.critical(self, "SongSlides", f"Could not start the slideshow:\n{e}")

    def _on_player_closed(self):
        player, self.player = self.player, None
        if player is not None:
            player.deleteLater()
        self.activateWindow()

    # -- Saved slideshows --------------------------------------------------

    def _save(self, name: str):
        project = self.editor.to_project(name)
        self.library_panel.set_busy(True)
        try:
            self.library.save(project)
        except StoreError as e:
            QMessageBox.critical(self, "Save failed", str(e))
            return
        finally:
            self.library_panel.set_busy(False)
        self.editor.mark_saved(project)
        self._refresh_library()
        self.statusBar().showMessage(f'Saved "{project.name}"', 5000)

    def _load(self, project_id: str):
        try:
            project = self.library.load(project_id)
        except StoreError as e:
            QMessageBox.critical(self, "Load failed", str(e))
            return
        self.editor.load_project(project)
        self.library_panel.set_name(project.name)
        self._refresh_library()
        self.statusBar().showMessage(f'Loaded "{project.name}"', 5000)

    def _delete(self, project_id: str):
        summary = self.library.get(project_id)
        name = summary.name if summary else "this slideshow"
        reply = QMessageBox.question(
            self, "Delete slideshow",
            f'Delete "{name}"? This cannot be undone.',
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        try:
            self.library.delete(project_id)
        except StoreError as e:
            QMessageBox.critical(self, "Delete failed", str(e))
            return
        if self.editor.active_project_id == project_id:
            self._new_slideshow()
            return
        self._refresh_library()

    def _new_slideshow(self):
        self.editor.new_slideshow()
        self.library_panel.set_name(self.editor.active_name)
        self._refresh_library()

    def closeEvent(self, event):
        if self.player is not None:
            self.player.close()
        self.editor.shutdown()
        super().closeEvent(event)

