"""loader.py – read a SPIDAcalc or Katapult JSON export from disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .errors import DocumentLoadError

logger = logging.getLogger(__name__)


def load_document(path: Path | str) -> dict:
    """Parse *path* as a JSON object.

    Raises :class:`DocumentLoadError` naming the file when it cannot be read,
    is not valid JSON, or does not hold a JSON object.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as e:
        raise DocumentLoadError(path, e.strerror or str(e)) from e
    except ValueError as e:
        raise DocumentLoadError(path, f"invalid JSON ({e})") from e

    if not isinstance(document, dict):
        raise DocumentLoadError(path, f"expected a JSON object, found {type(document).__name__}")

    logger.info(f"✅ Loaded {path.name}")
    return document
