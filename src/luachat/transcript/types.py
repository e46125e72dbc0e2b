"""Conversation data model shared by every wire format."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"

    @classmethod
    def parse(cls, value: str) -> Role | None:
        """Return the role named by ``value`` or ``None`` when it is unknown."""
        try:
            return cls(value.strip().casefold())
        except ValueError:
            return None


@dataclass(frozen=True)
class Turn:
    """One role-attributed message in a conversation."""

    role: Role
    content: str


Transcript = list[Turn]
