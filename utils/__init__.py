"""Utility helpers packaged for convenient imports."""

from .io import load_json_text, save_json  # noqa: F401
from .logging import setup_logging  # noqa: F401

__all__ = [
    "setup_logging",
    "load_json_text",
    "save_json",
]
