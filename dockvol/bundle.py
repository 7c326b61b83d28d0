"""
bundle.py
Utilities that make the program work as a portable, bundled tool.

Responsibilities
- Determine the "bundle root": where the binary (or script) lives.
- Provide DEFAULT_CONFIG_PATH that points to an adjacent `dockvol.toml`.
"""
from __future__ import annotations
import sys
from pathlib import Path


def bundle_root() -> Path:
    """
    Return the directory that contains the program.
    - PyInstaller onefile: sys.executable points to the extracted binary; use parent.
    - Source run: look for main.py or a dockvol.toml in the project root
    """
    if getattr(sys, "_MEIPASS", None):
        return Path(sys.executable).resolve().parent

    current = Path(__file__).resolve()
    for parent in [current.parent.parent] + list(current.parents):
        if (parent / "main.py").exists() or (parent / "dockvol.toml").exists():
            return parent

    return current.parent.parent


BUNDLE_DIR: Path = bundle_root()
DEFAULT_CONFIG_PATH: str = str(BUNDLE_DIR / "dockvol.toml")
SYSTEM_CONFIG_PATH: str = "/etc/dockvol.toml"
