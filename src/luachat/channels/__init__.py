"""Client transports."""

from luachat.channels.base import Transport

__all__ = ["Transport"]
