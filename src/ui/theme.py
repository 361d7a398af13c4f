"""
Dark theme for SongSlides
"""
from PyQt6.QtWidgets import QApplication
from PyQt6.QtGui import QColor, QPalette


class SlideshowTheme:
    """Dark theme with an indigo accent"""

    # Color Palette
    BG_DARK = "#111827"        # Main Background
    BG_PANEL = "#1F2937"       # Cards / Panels
    BG_RAISED = "#374151"      # Borders / Hover

    ACCENT = "#6366F1"         # Indigo
    ACCENT_HOVER = "#818CF8"
    DANGER = "#DC2626"
    NOTICE = "#FBBF24"         # Auto-adjustment banner

    TEXT_MAIN = "#E5E7EB"
    TEXT_DIM = "#9CA3AF"

    STYLESHEET = """
        QMainWindow, QDialog {
            background-color: #111827;
        }
        QWidget {
            background-color: #111827;
            color: #E5E7EB;
            font-family: "Segoe UI", "Helvetica Neue", sans-serif;
            font-size: 14px;
        }

        QPushButton {
            background-color: #374151;
            border: 1px solid #374151;
            border-radius: 6px;
            padding: 6px 14px;
            min-height: 24px;
        }
        QPushButton:hover {
            background-color: #4B5563;
        }
        QPushButton:disabled {
            background-color: #1F2937;
            color: #6B7280;
            border: 1px solid #1F2937;
        }
        QPushButton[class="primary"] {
            background-color: #6366F1;
            border: 1px solid #6366F1;
            color: white;
            font-weight: bold;
        }
        QPushButton[class="primary"]:hover {
            background-color: #818CF8;
        }
        QPushButton[class="danger"] {
            background-color: transparent;
            border: 1px solid #DC2626;
            color: #FCA5A5;
        }

        QLineEdit, QComboBox {
            background-color: #1F2937;
            border: 1px solid #374151;
            border-radius: 4px;
            padding: 4px 8px;
            color: #F9FAFB;
        }
        QLineEdit:focus, QComboBox:on {
            border: 1px solid #6366F1;
        }
        QComboBox QAbstractItemView {
            background-color: #1F2937;
            border: 1px solid #374151;
            selection-background-color: #4338CA;
        }

        QCheckBox::indicator {
            width: 16px;
            height: 16px;
        }

        QGroupBox {
            background-color: #1F2937;
            border: 1px solid #374151;
            border-radius: 8px;
            margin-top: 12px;
            padding-top: 8px;
            font-weight: bold;
        }
        QGroupBox::title {
            subcontrol-origin: margin;
            left: 10px;
            padding: 0 5px;
            color: #9CA3AF;
        }

        QLabel[class="notice"] {
            background-color: #422006;
            border: 1px solid #FBBF24;
            border-radius: 6px;
            color: #FDE68A;
            padding: 6px 10px;
        }
        QLabel[class="hint"] {
            color: #9CA3AF;
        }

        QListWidget {
            background-color: #1F2937;
            border: 1px solid #374151;
            border-radius: 6px;
            outline: none;
        }
        QListWidget::item {
            padding: 6px;
        }
        QListWidget::item:selected {
            background-color: #312E81;
            color: white;
            border-radius: 4px;
        }
        QListWidget::item:hover {
            background-color: #273244;
        }

        QScrollBar:vertical {
            background: #111827;
            width: 12px;
        }
        QScrollBar::handle:vertical {
            background: #4B5563;
            min-height: 20px;
            border-radius: 6px;
            margin: 2px;
        }
        QScrollBar::add-line:vertical, QScrollBar::sub-line:vertical {
            height: 0px;
        }

        QMenuBar {
            background-color: #111827;
            border-bottom: 1px solid #374151;
        }
        QMenuBar::item:selected, QMenu::item:selected {
            background-color: #312E81;
        }
        QMenu {
            background-color: #1F2937;
            border: 1px solid #374151;
        }

        QSplitter::handle:hover {
            background-color: #6366F1;
        }
    """

    @staticmethod
    def apply(app: QApplication):
        """Apply theme to application"""
        app.setStyle("Fusion")

        palette = QPalette()
        palette.setColor(QPalette.ColorRole.Window, QColor(SlideshowTheme.BG_DARK))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(SlideshowTheme.TEXT_MAIN))
        palette.setColor(QPalette.ColorRole.Base, QColor(SlideshowTheme.BG_PANEL))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor(SlideshowTheme.BG_DARK))
        palette.setColor(QPalette.ColorRole.Text, QColor(SlideshowTheme.TEXT_MAIN))
        palette.setColor(QPalette.ColorRole.Button, QColor(SlideshowTheme.BG_RAISED))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(SlideshowTheme.TEXT_MAIN))
        palette.setColor(QPalette.ColorRole.Highlight, QColor(SlideshowTheme.ACCENT))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor("#FFFFFF"))
        app.setPalette(palette)

        app.setStyleSheet(SlideshowTheme.STYLESHEET)
