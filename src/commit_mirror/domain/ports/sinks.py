"""Ports: object-storage sink and outcome event sink."""

from __future__ import annotations

from typing import Protocol

from commit_mirror.domain.entities import JobOutcome


class ObjectSink(Protocol):
    """Destination for mirrored file content."""

    async def write(self, key: str, data: bytes) -> None:
        """Store *data* under *key*, overwriting any previous object."""
        ...


class EventSink(Protocol):
    """Destination for the terminal job outcome."""

    async def emit(self, outcome: JobOutcome) -> None:
        """Publish *outcome*. Raises ``EventEmissionError`` on failure."""
        ...
