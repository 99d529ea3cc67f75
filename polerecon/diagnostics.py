"""diagnostics.py – append-only warning collector for one reconciliation run."""

from __future__ import annotations

import logging
from typing import Iterator, List

logger = logging.getLogger(__name__)


class WarningCollector:
    """Accumulates data-quality warnings.

    Create a fresh collector for every run; messages are never removed.
    Each message is also logged at WARNING level under *polerecon*.
    """

    def __init__(self) -> None:
        self._messages: List[str] = []

    def add(self, message: str) -> None:
        self._messages.append(message)
        logger.warning(message)

    @property
    def messages(self) -> List[str]:
        """Copy of the collected messages in insertion order."""
        return list(self._messages)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        # an empty collector is still a valid collaborator
        return True

    def __repr__(self) -> str:
        return f"WarningCollector({len(self._messages)} warnings)"
