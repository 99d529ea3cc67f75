"""errors.py – exception types raised by polerecon.

Data-quality problems in the survey documents never raise; they are
recorded in a :class:`~polerecon.diagnostics.WarningCollector`.  The types
below cover programmer errors and the file-loading boundary only.
"""

from __future__ import annotations

from pathlib import Path


class PoleReconError(Exception):
    """Base class for every error raised by this package."""


class MissingCollaboratorError(PoleReconError, TypeError):
    """A required collaborator argument (e.g. the warnings collector) was not supplied."""

    def __init__(self, name: str, where: str):
        super().__init__(f"{where}() requires a '{name}' argument")
        self.name = name
        self.where = where


class DocumentLoadError(PoleReconError):
    """A survey document could not be read or parsed as JSON."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(f"Could not load {path}: {reason}")
        self.path = Path(path)
        self.reason = reason
