"""Base transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Transport(ABC):
    """Bidirectional text channel to one connected client."""

    name: str = "base"

    @abstractmethod
    async def receive(self) -> str | None:
        """Wait for the next client message; ``None`` once the client is gone."""

    @abstractmethod
    async def send(self, text: str) -> None:
        """Write one fragment; raises TransportClosedError when the client is gone."""

    @abstractmethod
    async def close(self, *, code: int | None = None, reason: str = "") -> None:
        """Release the connection. Safe to call more than once."""
