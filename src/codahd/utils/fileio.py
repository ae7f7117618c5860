"""
Atomic JSON output for provenance sidecars.

A transform run writes its ``.params.json`` next to the data file. Writing to
a temporary file in the same directory and moving it into place with
``os.replace()`` means an interrupted run never leaves a half-written sidecar.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any

import numpy as np

__all__ = ['atomic_write_json']


def _to_builtin(value: Any) -> Any:
    """json.dump fallback for numpy scalars and arrays."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename.

    Parameters
    ----------
    path:
        Destination file path. The parent directory must exist.
    data:
        JSON-serializable object (numpy scalars and arrays are converted).
    indent:
        JSON indentation (default 2).
    """
    path = str(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            json.dump(data, tmp, indent=indent, default=_to_builtin)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
