"""
File system helpers for job-scoped storage.
"""

import shutil
from pathlib import Path

from shared.logging_utils import setup_logging

logger = setup_logging("file-utils")


def ensure_directory(path: str | Path) -> Path:
    """Ensure directory exists, create if not."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def resolve_within(base_dir: str | Path, filename: str) -> Path:
    """
    Resolve ``filename`` inside ``base_dir``.

    Raises:
        ValueError: if the resolved path escapes ``base_dir``.
    """
    base = Path(base_dir).resolve()
    candidate = (base / filename).resolve()
    if candidate == base or not candidate.is_relative_to(base):
        raise ValueError(f"Path '{filename}' is outside of {base}")
    return candidate


def remove_file(path: str | Path) -> bool:
    """Delete a file. Missing files are not an error. Returns True if a file was removed."""
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Failed to delete file %s: %s", path, exc)
        return False


def remove_files(paths: list[str]) -> int:
    """Best-effort deletion of several files, returns how many were removed."""
    return sum(1 for path in paths if remove_file(path))


def remove_directory(path: str | Path) -> bool:
    """Recursively delete a directory. Missing directories are not an error."""
    directory = Path(path)
    if not directory.exists():
        return False
    try:
        shutil.rmtree(directory)
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Failed to delete directory %s: %s", directory, exc)
        return False
