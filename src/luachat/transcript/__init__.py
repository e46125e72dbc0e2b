"""Transcript model and wire codecs."""

from luachat.transcript.codecs import ChatMarkupCodec, HeaderIdCodec, TranscriptCodec, available_formats, get_codec
from luachat.transcript.types import Role, Transcript, Turn

__all__ = [
    "ChatMarkupCodec",
    "HeaderIdCodec",
    "Role",
    "Transcript",
    "TranscriptCodec",
    "Turn",
    "available_formats",
    "get_codec",
]
