from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence

from luachat.core.model_client import StreamChunk
from luachat.errors import TransportClosedError
from luachat.transcript.codecs import TranscriptCodec
from luachat.transcript.types import Turn


class FakeTransport:
    name = "fake"

    def __init__(self, inbound: Sequence[str], *, fail_after_sends: int | None = None) -> None:
        self.inbound = list(inbound)
        self.sent: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self.close_reason = ""
        self._fail_after_sends = fail_after_sends

    async def receive(self) -> str | None:
        if self.closed or not self.inbound:
            return None
        return self.inbound.pop(0)

    async def send(self, text: str) -> None:
        if self.closed:
            raise TransportClosedError("closed")
        if self._fail_after_sends is not None and len(self.sent) >= self._fail_after_sends:
            raise TransportClosedError("client went away")
        self.sent.append(text)

    async def close(self, *, code: int | None = None, reason: str = "") -> None:
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        self.close_reason = reason


async def stream_of(chunks: Sequence[StreamChunk | str], error: Exception | None = None) -> AsyncGenerator[StreamChunk, None]:
    for chunk in chunks:
        yield StreamChunk(text=chunk) if isinstance(chunk, str) else chunk
    if error is not None:
        raise error


class FakeClient:
    """Serves one scripted reply per open_stream call.

    A reply is either an exception raised on open, or ``(chunks, error)`` where
    ``error`` is raised after the chunks have been yielded.
    """

    def __init__(self, *replies: object) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[str, list[Turn]]] = []
        self.closed = False

    async def open_stream(self, codec: TranscriptCodec, turns: Sequence[Turn]) -> AsyncGenerator[StreamChunk, None]:
        self.calls.append((codec.name, list(turns)))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, tuple):
            chunks, error = reply
            return stream_of(chunks, error)
        return stream_of(reply)  # type: ignore[arg-type]

    async def aclose(self) -> None:
        self.closed = True
