"""Environment helper utilities.

Loads a `.env` file from the project root so that ``INVENTORY_*`` settings
defined there become available via ``os.getenv`` when the config is built.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

__all__ = ["load_project_dotenv"]

_MAX_LEVELS = 10


def _find_project_root(start: Path | None = None) -> Path:
    """Walk upwards until a directory containing `pyproject.toml` is found."""
    current = start or Path(__file__).resolve().parent
    for _ in range(_MAX_LEVELS):
        if (current / "pyproject.toml").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return Path(__file__).resolve().parent


def load_project_dotenv(filename: str = ".env") -> bool:
    """Load variables from the project-level dotenv file, if present.

    Values already set in the process environment win. Returns True when a
    file was found and loaded.
    """
    dotenv_path = _find_project_root() / filename
    if not dotenv_path.exists():
        return False
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return True
