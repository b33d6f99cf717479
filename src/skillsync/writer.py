"""Filesystem writers: atomic text/JSON writes and skill-file copies."""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path


def atomic_write(path: Path, content: str) -> None:
    """Write content to path atomically using tempfile + os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            _ = f.write(content.encode())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def write_json(path: Path, data: object) -> Path:
    atomic_write(path, json.dumps(data, indent=2) + "\n")
    return path


def copy_file(source: Path, target: Path) -> Path:
    """Copy source over target, creating parent directories. Returns target."""
    target.parent.mkdir(parents=True, exist_ok=True)
    _ = shutil.copyfile(source, target)
    return target
