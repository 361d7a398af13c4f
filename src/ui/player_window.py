"""
Player Window - Full-screen slideshow playback

Hosts the Qt implementations of the audio and video sinks and renders the
slides, the clock and the caption. All timing decisions belong to the
PlaybackSession; this window only reacts to its signals.
"""
import logging
from typing import Callable, Optional

from PyQt6.QtWidgets import (
    QWidget, QLabel, QPushButton, QStackedLayout, QStyle, QStyleOption,
    QGraphicsOpacityEffect
)
from PyQt6.QtCore import (
    Qt, QUrl, QPointF, QPropertyAnimation, QParallelAnimationGroup, QEasingCurve,
    pyqtProperty, pyqtSignal
)
from PyQt6.QtGui import QPixmap, QPainter, QPainterPath, QPen, QColor
from PyQt6.QtMultimedia import QMediaPlayer, QAudioOutput
from PyQt6.QtMultimediaWidgets import QVideoWidget

from core.playback import AudioSink, PlaybackRejected, PlaybackSession, VideoSink
from models.settings import TransitionStyle

logger = logging.getLogger(__name__)

TRANSITION_MS = 1000


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------

class QtAudioSink(AudioSink):
    """QMediaPlayer + QAudioOutput for the song"""

    def __init__(self, parent=None):
        self.audio_output = QAudioOutput(parent)
        self.player = QMediaPlayer(parent)
        self.player.setAudioOutput(self.audio_output)
        self.player.errorOccurred.connect(self._on_error)

    def set_source(self, path: str):
        self.player.setSource(QUrl.fromLocalFile(path))

    def volume(self) -> float:
        return self.audio_output.volume()

    def set_volume(self, volume: float):
        self.audio_output.setVolume(max(0.0, min(1.0, volume)))

    def seek(self, position_ms: int):
        self.player.setPosition(position_ms)

    def play(self):
        if self.player.error() != QMediaPlayer.Error.NoError:
            raise PlaybackRejected(self.player.errorString())
        self.player.play()

    def stop(self):
        self.player.stop()
        self.player.setSource(QUrl())

    def _on_error(self, error, message):
        logger.warning("Audio playback error: %s", message)


class QtVideoSink(VideoSink):
    """Muted QMediaPlayer rendering into a QVideoWidget"""

    def __init__(self, video_widget: QVideoWidget, parent=None):
        self.video_widget = video_widget
        self.audio_output = QAudioOutput(parent)
        self.audio_output.setMuted(True)
        self.player = QMediaPlayer(parent)
        self.player.setAudioOutput(self.audio_output)
        self.player.setVideoOutput(video_widget)
        self.player.mediaStatusChanged.connect(self._on_status)
        self.player.errorOccurred.connect(self._on_error)
        self._ended: Optional[Callable[[], None]] = None
        self._path: Optional[str] = None

    def set_ended_callback(self, callback):
        self._ended = callback

    def play_from_start(self, path: str):
        if path != self._path:
            self._path = path
            self.player.setSource(QUrl.fromLocalFile(path))
        self.player.setPosition(0)
        if self.player.error() != QMediaPlayer.Error.NoError:
            raise PlaybackRejected(self.player.errorString())
        self.player.play()

    def stop(self):
        self.player.stop()

    def release(self):
        self.player.stop()
        self.player.setSource(QUrl())
        self._path = None

    def _on_status(self, status):
        if status == QMediaPlayer.MediaStatus.EndOfMedia and self._ended is not None:
            self._ended()

    def _on_error(self, error, message):
        logger.warning("Video playback error: %s", message)


# ---------------------------------------------------------------------------
# Widgets
# ---------------------------------------------------------------------------

class ImageCanvas(QWidget):
    """Letterboxed image with animatable zoom and offset"""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pixmap = QPixmap()
        self._zoom = 1.0
        self._offset = QPointF(0, 0)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent)

    def set_pixmap(self, pixmap: QPixmap):
        self._pixmap = pixmap
        self.update()

    def get_zoom(self) -> float:
        return self._zoom

    def set_zoom(self, value: float):
        self._zoom = value
        self.update()

    zoom = pyqtProperty(float, fget=get_zoom, fset=set_zoom)

    def get_offset(self) -> QPointF:
        return self._offset

    def set_offset(self, value: QPointF):
        self._offset = QPointF(value)
        self.update()

    offset = pyqtProperty(QPointF, fget=get_offset, fset=set_offset)

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), Qt.GlobalColor.black)
        if self._pixmap.isNull():
            return
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        scaled = self._pixmap.size().scaled(self.size(), Qt.AspectRatioMode.KeepAspectRatio)
        w = scaled.width() * self._zoom
        h = scaled.height() * self._zoom
        x = (self.width() - w) / 2 + self._offset.x()
        y = (self.height() - h) / 2 + self._offset.y()
        painter.drawPixmap(int(x), int(y), int(w), int(h), self._pixmap)


class CaptionLabel(QLabel):
    """QLabel with outlined text so captions stay readable on any image"""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._outline_width = 2
        self._outline_color = QColor(0, 0, 0, 200)
        self._text_color = QColor(255, 255, 255)
        self.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignVCenter)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        opt = QStyleOption()
        opt.initFrom(self)
        self.style().drawPrimitive(QStyle.PrimitiveElement.PE_Widget, opt, painter, self)

        if not self.text():
            return

        metrics = self.fontMetrics()
        rect = self.contentsRect()
        line = metrics.elidedText(self.text(), Qt.TextElideMode.ElideRight, rect.width())
        x = rect.center().x() - metrics.horizontalAdvance(line) / 2
        y = rect.center().y() - metrics.height() / 2 + metrics.ascent()

        path = QPainterPath()
        path.addText(x, y, self.font(), line)

        # Stroke is centered on the path, so double it for the visible width
        pen = QPen(self._outline_color)
        pen.setWidthF(self._outline_width * 2)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(self._text_color)
        painter.drawPath(path)


class SlideshowWindow(QWidget):
    """Full-screen player for one PlaybackSession"""

    closed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("SongSlides")
        self.setStyleSheet("background-color: black;")
        self.setCursor(Qt.CursorShape.BlankCursor)
        self.session: Optional[PlaybackSession] = None
        self._animation = None

        self._stack = QStackedLayout(self)
        self._stack.setContentsMargins(0, 0, 0, 0)
        self.canvas = ImageCanvas()
        self._opacity = QGraphicsOpacityEffect(self.canvas)
        self.canvas.setGraphicsEffect(self._opacity)
        self.video_widget = QVideoWidget()
        self._stack.addWidget(self.canvas)
        self._stack.addWidget(self.video_widget)

        self.audio_sink = QtAudioSink(self)
        self.video_sink = QtVideoSink(self.video_widget, self)

        self.clock_label = QLabel(self)
        self.clock_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        self.clock_label.setStyleSheet(
            "background-color: rgba(0, 0, 0, 110); color: white; border-radius: 8px;"
            "padding: 10px; font-family: monospace; font-size: 20px;"
        )
        self.clock_label.hide()

        self.caption_label = CaptionLabel(self)
        self.caption_label.setStyleSheet("background: transparent; font-size: 26px;")
        self.caption_label.hide()

        self.close_btn = QPushButton("✕", self)
        self.close_btn.setToolTip("Close slideshow (Esc)")
        self.close_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.close_btn.setFixedSize(44, 44)
        self.close_btn.setStyleSheet(
            "QPushButton { background-color: rgba(0, 0, 0, 130); color: white;"
            " border-radius: 22px; font-size: 20px; }"
            "QPushButton:hover { background-color: rgba(0, 0, 0, 200); }"
        )
        self.close_btn.clicked.connect(self.close)

    def attach(self, session: PlaybackSession):
        """Follow *session*'s signals; closing either one closes both"""
        self.session = session
        session.slide_changed.connect(self._on_slide_changed)
        session.caption_changed.connect(self._on_caption_changed)
        session.clock_tick.connect(self._on_clock_tick)
        session.closed.connect(self._on_session_closed)
        self.clock_label.setVisible(session.settings.show_clock)

    # -- Session signals ---------------------------------------------------

    def _on_slide_changed(self, index: int):
        item = self.session.media[index]
        self._stop_animation()

        if item.is_video:
            self._opacity.setOpacity(1.0)
            self._stack.setCurrentWidget(self.video_widget)
        else:
            pixmap = QPixmap(self.session.path_for(index))
            if pixmap.isNull():
                logger.warning("Could not load image %s", item.display_name)
            self.canvas.set_pixmap(pixmap)
            self._stack.setCurrentWidget(self.canvas)
            self._animate(self.session.settings.transition_style)
        self._raise_overlays()

    def _on_caption_changed(self, caption):
        self.caption_label.setText(caption or "")
        self.caption_label.setVisible(bool(caption))

    def _on_clock_tick(self, text: str):
        self.clock_label.setText(text)
        self.clock_label.adjustSize()
        self._layout_overlays()

    def _on_session_closed(self):
        self.session = None
        if self.isVisible():
            self.close()

    # -- Transitions -------------------------------------------------------

    def _animate(self, style: TransitionStyle):
        group = QParallelAnimationGroup(self)
        self.canvas.set_zoom(1.0)
        self.canvas.set_offset(QPointF(0, 0))

        fade = QPropertyAnimation(self._opacity, b"opacity", group)
        fade.setDuration(TRANSITION_MS)
        fade.setStartValue(0.0)
        fade.setEndValue(1.0)
        group.addAnimation(fade)

        if style is TransitionStyle.KEN_BURNS:
            zoom = QPropertyAnimation(self.canvas, b"zoom", group)
            zoom.setDuration(self.session.settings.interval_seconds * 1000)
            zoom.setStartValue(1.0)
            zoom.setEndValue(1.12)
            group.addAnimation(zoom)
        elif style is TransitionStyle.ZOOM_IN:
            zoom = QPropertyAnimation(self.canvas, b"zoom", group)
            zoom.setDuration(TRANSITION_MS)
            zoom.setStartValue(0.6)
            zoom.setEndValue(1.0)
            zoom.setEasingCurve(QEasingCurve.Type.OutCubic)
            group.addAnimation(zoom)
        elif style in (TransitionStyle.SLIDE_RIGHT, TransitionStyle.SLIDE_BOTTOM):
            start = QPointF(self.width(), 0) if style is TransitionStyle.SLIDE_RIGHT else QPointF(0, self.height())
            slide = QPropertyAnimation(self.canvas, b"offset", group)
            slide.setDuration(TRANSITION_MS)
            slide.setStartValue(start)
            slide.setEndValue(QPointF(0, 0))
            slide.setEasingCurve(QEasingCurve.Type.OutCubic)
            group.addAnimation(slide)

        self._animation = group
        group.start()

    def _stop_animation(self):
        if self._animation is not None:
            self._animation.stop()
            self._animation.deleteLater()
            self._animation = None

    # -- Layout ------------------------------------------------------------

    def _raise_overlays(self):
        for widget in (self.clock_label, self.caption_label, self.close_btn):
            widget.raise_()

    def _layout_overlays(self):
        margin = 16
        self.close_btn.move(margin, margin)
        self.clock_label.move(self.width() - self.clock_label.width() - margin, margin)
        self.caption_label.setGeometry(0, self.height() - 110, self.width(), 80)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._layout_overlays()
        self._raise_overlays()

    def closeEvent(self, event):
        self._stop_animation()
        if self.session is not None:
            self.session.close()
        self.closed.emit()
        super().closeEvent(event)
