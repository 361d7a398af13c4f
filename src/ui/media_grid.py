from typing import Dict, Iterable

from PyQt6.QtWidgets import (
    QAbstractItemView, QApplication, QListWidget, QListWidgetItem, QMenu, QStyle,
    QStyledItemDelegate, QStyleOptionViewItem
)
from PyQt6.QtCore import Qt, pyqtSignal, QSize, QRect
from PyQt6.QtGui import QFontMetrics, QIcon, QPalette, QPixmap

from models.media import MediaItem

ID_ROLE = Qt.ItemDataRole.UserRole
ICON_SIZE = 96
TEXT_PADDING = 36


class MediaGridDelegate(QStyledItemDelegate):
    """Thumbnail with the file name below and a slide number badge"""
    def paint(self, painter, option, index):
        option = QStyleOptionViewItem(option)
        self.initStyleOption(option, index)

        style = option.widget.style() if option.widget else QApplication.style()
        style.drawPrimitive(QStyle.PrimitiveElement.PE_PanelItemViewItem, option, painter, option.widget)

        rect = option.rect
        icon_size = option.decorationSize.width() if not option.decorationSize.isEmpty() else ICON_SIZE

        icon = index.data(Qt.ItemDataRole.DecorationRole)
        actual_icon_h = 0
        if icon:
            pixmap = icon.pixmap(icon_size, icon_size)
            if not pixmap.isNull():
                x = rect.x() + (rect.width() - pixmap.width()) // 2
                y = rect.y() + 5
                painter.drawPixmap(x, y, pixmap)
                actual_icon_h = pixmap.height()

        # Playback order badge
        badge = QRect(rect.x() + 4, rect.y() + 4, 22, 18)
        painter.fillRect(badge, option.palette.color(QPalette.ColorRole.Highlight))
        painter.setPen(option.palette.color(QPalette.ColorRole.HighlightedText))
        painter.drawText(badge, Qt.AlignmentFlag.AlignCenter, str(index.row() + 1))

        text = index.data(Qt.ItemDataRole.DisplayRole)
        if text:
            y_offset = (actual_icon_h if actual_icon_h > 0 else icon_size) + 7
            text_rect = QRect(rect.x(), rect.y() + int(y_offset), rect.width(), 20)
            fm = QFontMetrics(option.font)
            elided_text = fm.elidedText(text, Qt.TextElideMode.ElideRight, text_rect.width() - 4)

            painter.setPen(option.palette.color(QPalette.ColorRole.Text))
            if option.state & QStyle.StateFlag.State_Selected:
                painter.setPen(option.palette.color(QPalette.ColorRole.HighlightedText))
            painter.drawText(text_rect, Qt.AlignmentFlag.AlignCenter, elided_text)

    def sizeHint(self, option, index):
        icon_size = option.decorationSize.width() if not option.decorationSize.isEmpty() else ICON_SIZE
        total_size = icon_size + TEXT_PADDING
        return QSize(total_size, total_size)


class MediaGridWidget(QListWidget):
    """Reorderable grid of slides.

    The grid never reorders itself: drops are reported as
    ``move_requested(source, target)`` and the grid is rebuilt from the
    media list afterwards, so the list stays the single source of order.
    """

    move_requested = pyqtSignal(int, int)
    remove_requested = pyqtSignal(str)
    files_dropped = pyqtSignal(list)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._thumbnails: Dict[str, QIcon] = {}

        self.setViewMode(QListWidget.ViewMode.IconMode)
        self.setFlow(QListWidget.Flow.LeftToRight)
        self.setWrapping(True)
        self.setResizeMode(QListWidget.ResizeMode.Adjust)
        self.setMovement(QListWidget.Movement.Snap)
        self.setIconSize(QSize(ICON_SIZE, ICON_SIZE))
        self.setGridSize(QSize(ICON_SIZE + TEXT_PADDING, ICON_SIZE + TEXT_PADDING))
        self.setItemDelegate(MediaGridDelegate(self))
        self.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.setDragDropMode(QAbstractItemView.DragDropMode.DragDrop)
        self.setDefaultDropAction(Qt.DropAction.MoveAction)
        self.setAcceptDrops(True)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.customContextMenuRequested.connect(self._show_context_menu)

    def set_media(self, items: Iterable[MediaItem]):
        """Rebuild the grid from the media list"""
        items = list(items)
        selected = self.selected_id()
        live_ids = {item.id for item in items}
        self._thumbnails = {k: v for k, v in self._thumbnails.items() if k in live_ids}

        self.clear()
        for item in items:
            entry = QListWidgetItem(self._thumbnail(item), item.display_name)
            entry.setData(ID_ROLE, item.id)
            if item.caption:
                entry.setToolTip(item.caption)
            elif item.is_video and item.duration is not None:
                entry.setToolTip(f"Video, {item.duration:.1f}s")
            self.addItem(entry)
            if item.id == selected:
                self.setCurrentItem(entry)

    def selected_id(self):
        item = self.currentItem()
        return item.data(ID_ROLE) if item else None

    def _thumbnail(self, item: MediaItem) -> QIcon:
        icon = self._thumbnails.get(item.id)
        if icon is not None:
            return icon
        if item.is_video:
            icon = self.style().standardIcon(QStyle.StandardPixmap.SP_MediaPlay)
        else:
            pixmap = QPixmap()
            try:
                pixmap.loadFromData(item.blob.read_bytes())
            except OSError:
                pass
            if pixmap.isNull():
                icon = self.style().standardIcon(QStyle.StandardPixmap.SP_FileIcon)
            else:
                icon = QIcon(pixmap.scaled(
                    ICON_SIZE, ICON_SIZE,
                    Qt.AspectRatioMode.KeepAspectRatio,
                    Qt.TransformationMode.SmoothTransformation,
                ))
        self._thumbnails[item.id] = icon
        return icon

    def _show_context_menu(self, pos):
        item = self.itemAt(pos)
        if item is None:
            return
        menu = QMenu(self)
        remove_action = menu.addAction("Remove")
        if menu.exec(self.mapToGlobal(pos)) == remove_action:
            self.remove_requested.emit(item.data(ID_ROLE))

    def keyPressEvent(self, event):
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace) and self.currentItem():
            self.remove_requested.emit(self.selected_id())
            event.accept()
            return
        super().keyPressEvent(event)

    # -- Drag and drop -----------------------------------------------------

    def dragEnterEvent(self, event):
        if event.source() is self or event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if event.source() is self or event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        if event.source() is self:
            source = self.currentRow()
            target_item = self.itemAt(event.position().toPoint())
            target = self.row(target_item) if target_item is not None else self.count() - 1
            # Copy action keeps Qt from removing the dragged row itself
            event.setDropAction(Qt.DropAction.CopyAction)
            event.accept()
            if source >= 0 and target >= 0 and source != target:
                self.move_requested.emit(source, target)
            return

        if event.mimeData().hasUrls():
            paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
            event.acceptProposedAction()
            if paths:
                self.files_dropped.emit(paths)
            return
        event.ignore()
