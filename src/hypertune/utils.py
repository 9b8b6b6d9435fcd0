from __future__ import annotations

import json
import os
import re
import time
import uuid
from pathlib import Path
from typing import Any

MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def clean_upper(name: str) -> str:
    """
    Uppercase and keep only A-Z / 0-9, for use inside access codes.
    """
    return re.sub(r"[^A-Z0-9]+", "", name.strip().upper())


def parse_int_or(raw: Any, fallback: int) -> int:
    """
    Parse the leading integer of a form value, like a browser number field.

    Non-numeric input and zero both yield `fallback`. No range clamping is done.
    """
    if isinstance(raw, bool):
        return fallback
    if isinstance(raw, int):
        return raw or fallback
    if isinstance(raw, float):
        return int(raw) or fallback
    m = re.match(r"\s*([+-]?\d+)", str(raw or ""))
    if not m:
        return fallback
    return int(m.group(1)) or fallback


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_json(path: Path, obj: Any) -> None:
    """
    Write JSON atomically: readers see either the old or the new document.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    tmp.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)
