from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import List

from datastore.errors import CatalogNotFound, CorruptData
from utils.io import load_json_text

logger = logging.getLogger(__name__)

HEADER_VALUE = "Account Name"

_INVISIBLE = re.compile("[\u200b-\u200d\ufeff]")


def clean_client_name(value: object) -> str:
    """Undo spreadsheet-export artefacts in a client name."""
    if not value:
        return ""
    text = _INVISIBLE.sub("", str(value).strip())
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]
    text = text.replace('""', '"')
    return text.strip()


class ClientCatalog:
    """Read-only list of client names used for autocompletion."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def names(self) -> List[str]:
        try:
            payload = load_json_text(self._path)
        except FileNotFoundError as exc:
            raise CatalogNotFound(self._path) from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Client catalog %s is unreadable: %s", self._path, exc)
            raise CorruptData(f"Client catalog is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            return []
        result = []
        for raw in payload:
            if not raw or raw == HEADER_VALUE:
                continue
            name = clean_client_name(raw)
            if name and name != HEADER_VALUE:
                result.append(name)
        return result
