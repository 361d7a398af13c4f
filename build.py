import PyInstaller.__main__
import os
from pathlib import Path
from PyInstaller.utils.hooks import collect_all


def build():
    BASE_DIR = Path(__file__).parent.absolute()
    SRC_DIR = BASE_DIR / "src"

    # Platform specific separator
    sep = ";" if os.name == 'nt' else ":"

    datas = []
    binaries = []
    hiddenimports = [
        "PyQt6.QtMultimedia",
        "PyQt6.QtMultimediaWidgets",
        "google.genai",
    ]

    # google-genai ships data (model schemas) that PyInstaller misses
    for package in ["google.genai"]:
        try:
            tmp_datas, tmp_binaries, tmp_hidden = collect_all(package)
            datas.extend(tmp_datas)
            binaries.extend(tmp_binaries)
            hiddenimports.extend(tmp_hidden)
        except Exception as e:
            print(f"Warning: Could not collect info for {package}: {e}")

    args = [
        str(SRC_DIR / "main.py"),  # Entry point
        "--name=SongSlides",
        "--noconfirm",
        "--clean",
        "--windowed",  # GUI mode
        f"--paths={SRC_DIR}",
    ]

    for d in datas:
        if d[1] != ".":
            args.append(f"--add-data={d[0]}{sep}{d[1]}")

    for b in binaries:
        args.append(f"--add-binary={b[0]}{sep}{b[1]}")

    for h in sorted(set(hiddenimports)):
        args.append(f"--hidden-import={h}")

    print("Running PyInstaller (ffprobe must be installed separately or set via SONGSLIDES_FFPROBE)")
    PyInstaller.__main__.run(args)


if __name__ == "__main__":
    build()
