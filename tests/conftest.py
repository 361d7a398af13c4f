import os
import sys

# Headless Qt for CI; must be set before any QApplication exists
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Ensure src/ is on the path so that absolute imports work.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
