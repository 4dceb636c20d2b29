"""Small JSON file store with atomic writes.

Used for the measurement snapshot, the calibration snapshot and the plant
config file. Writes go to a temporary file in the same directory which then
replaces the target, so readers never see a half-written document.
Callers serialize their own writers; there is no cross-process lock, so a
crash mid-save leaves at most a stale ``.tmp`` file that the next save
overwrites.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


class StoreError(Exception):
    """A JSON store file exists but cannot be read, parsed or written."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


def load_json(path: str, default: Any = _MISSING) -> Any:
    """Read a JSON document.

    Returns ``default`` when the file does not exist (if a default is given).

    Raises:
        FileNotFoundError: file missing and no default given.
        StoreError: file unreadable or not valid JSON.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        if default is _MISSING:
            raise
        logger.info("%s not found, using defaults", path)
        return default
    except json.JSONDecodeError as e:
        raise StoreError(path, f"invalid JSON: {e}") from e
    except OSError as e:
        raise StoreError(path, f"cannot read: {e}") from e


def save_json(path: str, data: Any, *, mode: int = 0o600) -> None:
    """Atomically replace ``path`` with ``data`` serialized as JSON.

    Raises:
        StoreError: the file could not be written.
    """
    directory = os.path.dirname(os.path.abspath(path))
    tmp = path + ".tmp"
    try:
        os.makedirs(directory, exist_ok=True)
        fd = os.open(tmp, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError) as e:
        raise StoreError(path, f"cannot write: {e}") from e
