"""Application-level exception types for luachat."""

from __future__ import annotations


class LuaChatError(Exception):
    """Base exception for luachat."""


class ConfigurationError(LuaChatError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when no model identifier is configured."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class UnknownTranscriptFormatError(ConfigurationError):
    """Raised when the configured transcript format has no codec."""


class TransportClosedError(LuaChatError):
    """Raised when the client transport can no longer be read or written."""


class ModelStreamError(LuaChatError):
    """Raised when the remote completion stream fails.

    ``phase`` is ``"open"`` when the request could not be started and
    ``"stream"`` when the failure happened after tokens started flowing.
    """

    def __init__(self, phase: str, message: str) -> None:
        super().__init__(message)
        self.phase = phase
