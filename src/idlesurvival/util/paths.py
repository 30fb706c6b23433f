from __future__ import annotations
from pathlib import Path
import sys

def frozen_base_dir() -> Path:
    # PyInstaller --onefile unpacks data to sys._MEIPASS
    if hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS) / "idlesurvival"  # type: ignore[attr-defined]
    # dev mode: src/idlesurvival
    return Path(__file__).resolve().parent.parent

def content_dir() -> Path:
    # In onefile builds embed content with --add-data as "idlesurvival/content"
    return frozen_base_dir() / "content"
