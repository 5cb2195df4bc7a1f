from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import orjson


def read_json_safe(path: Path, fallback: Any) -> Any:
    """Parse a JSON file, returning ``fallback`` when it does not exist."""
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return fallback
    return orjson.loads(raw)


def write_bytes_atomic(path: Path, data: bytes) -> Path:
    """Write via a sibling temp file + os.replace so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    return path


def dump_json_pretty(obj: Any) -> bytes:
    return orjson.dumps(obj, option=orjson.OPT_INDENT_2)
