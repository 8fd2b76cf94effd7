from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

_BOM = "\ufeff"


def load_json_text(path: Path) -> Any:
    """Parse a JSON file, tolerating a leading BOM and surrounding whitespace.

    Raises ``FileNotFoundError``, ``UnicodeDecodeError`` or
    ``json.JSONDecodeError`` for the caller to translate.
    """

    raw = path.read_text(encoding="utf-8")
    if raw.startswith(_BOM):
        raw = raw[len(_BOM):]
    return json.loads(raw.strip())


def save_json(payload: object, path: Path) -> None:
    """Atomically persist a Python object as indented JSON.

    The payload goes to a sibling ``.tmp`` file which then replaces the
    target, so readers see either the old content or the new one.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
