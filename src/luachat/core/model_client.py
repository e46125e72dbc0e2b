"""Streaming adapters for the remote completion API."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger
from openai import AsyncOpenAI

from luachat.errors import ModelStreamError
from luachat.transcript.codecs import ApiMode, TranscriptCodec
from luachat.transcript.types import Turn


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass(frozen=True)
class StreamChunk:
    """One incremental piece of model output; usage arrives on its own chunk."""

    text: str = ""
    usage: Usage | None = None


TokenStream = AsyncGenerator[StreamChunk, None]


class CompletionClient(Protocol):
    async def open_stream(self, codec: TranscriptCodec, turns: Sequence[Turn]) -> TokenStream:
        """Start a streamed completion; raises ModelStreamError(phase="open")."""
        ...

    async def aclose(self) -> None: ...


class OpenAICompletionClient:
    """Completion client for any OpenAI-compatible endpoint."""

    def __init__(
        self,
        *,
        model: str,
        api_key: str,
        base_url: str | None = None,
        max_tokens: int | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url or None)

    @property
    def model(self) -> str:
        return self._model

    async def open_stream(self, codec: TranscriptCodec, turns: Sequence[Turn]) -> TokenStream:
        request: dict[str, Any] = {
            "model": self._model,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if self._max_tokens is not None:
            request["max_tokens"] = self._max_tokens
        if codec.stop_sequences:
            request["stop"] = list(codec.stop_sequences)

        logger.info("model.stream.open model={} mode={} turns={}", self._model, codec.api_mode, len(turns))
        try:
            if codec.api_mode is ApiMode.CHAT:
                stream = await self._client.chat.completions.create(
                    messages=codec.to_chat_messages(turns),  # type: ignore[arg-type]
                    **request,
                )
            else:
                stream = await self._client.completions.create(prompt=codec.encode(turns), **request)
        except Exception as exc:
            raise ModelStreamError("open", f"{type(exc).__name__}: {exc!s}") from exc
        return self._iterate(stream, codec.api_mode)

    async def aclose(self) -> None:
        await self._client.close()

    async def _iterate(self, stream: Any, mode: ApiMode) -> TokenStream:
        try:
            async for chunk in stream:
                text = _chunk_text(chunk, mode)
                usage = _chunk_usage(chunk)
                if text or usage is not None:
                    yield StreamChunk(text=text, usage=usage)
        except Exception as exc:
            raise ModelStreamError("stream", f"{type(exc).__name__}: {exc!s}") from exc
        finally:
            await stream.close()


def _chunk_text(chunk: Any, mode: ApiMode) -> str:
    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return ""
    if mode is ApiMode.CHAT:
        delta = getattr(choices[0], "delta", None)
        return getattr(delta, "content", None) or ""
    return getattr(choices[0], "text", None) or ""


def _chunk_usage(chunk: Any) -> Usage | None:
    usage = getattr(chunk, "usage", None)
    if usage is None:
        return None
    return Usage(
        prompt_tokens=int(getattr(usage, "prompt_tokens", 0) or 0),
        completion_tokens=int(getattr(usage, "completion_tokens", 0) or 0),
    )
