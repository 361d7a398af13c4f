"""
SongSlides - Entry Point
"""
import logging
import sys
from pathlib import Path

# Add src to path for running as script
sys.path.insert(0, str(Path(__file__).parent))

from PyQt6.QtWidgets import QApplication

from logging_utils import get_default_log_path, setup_logging
from runtime_config import get_config
from ui.main_window import MainWindow
from ui.theme import SlideshowTheme


def main():
    """Application entry point"""
    config = get_config()
    setup_logging(level=config.log_level, log_file=str(get_default_log_path()))
    logging.getLogger(__name__).info("Starting SongSlides (store: %s)", config.store_dir)

    app = QApplication(sys.argv)
    app.setApplicationName("SongSlides")

    SlideshowTheme.apply(app)

    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
