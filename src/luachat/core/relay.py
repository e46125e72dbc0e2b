"""Per-connection streaming relay loop."""

from __future__ import annotations

import uuid
from contextlib import aclosing
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from loguru import logger

from luachat.channels.base import Transport
from luachat.core.model_client import CompletionClient, TokenStream, Usage
from luachat.core.sandbox import ExecutionResult
from luachat.core.script import ScriptBlock, dangling_close, extract_script
from luachat.errors import ModelStreamError, TransportClosedError
from luachat.transcript.codecs import TranscriptCodec
from luachat.transcript.types import Role, Transcript, Turn

ERROR_PREFIX = "Got error: "
STREAM_UNAVAILABLE_PREFIX = "\n[error] model stream unavailable: "
# WebSocket "internal error" close code.
CLOSE_INTERNAL_ERROR = 1011


class Sandbox(Protocol):
    async def run(self, code: str) -> ExecutionResult: ...


class SessionState(StrEnum):
    AWAITING_INPUT = "awaiting_input"
    STREAMING = "streaming"
    EXECUTING_SCRIPT = "executing_script"
    EMITTING_TOOL_TURN = "emitting_tool_turn"
    CLOSED = "closed"


@dataclass(frozen=True)
class RelayContext:
    """Read-only collaborators shared by every session in the process."""

    codec: TranscriptCodec
    client: CompletionClient
    sandbox: Sandbox
    system_prompt: str


@dataclass
class UsageTotals:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def add(self, usage: Usage) -> None:
        self.prompt_tokens += usage.prompt_tokens
        self.completion_tokens += usage.completion_tokens


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one request/response cycle."""

    assistant_text: str
    script: ScriptBlock | None = None
    execution: ExecutionResult | None = None
    stream_error: str | None = None


class RelaySession:
    """Drives one client connection, one user message at a time."""

    def __init__(self, transport: Transport, context: RelayContext, *, session_id: str | None = None) -> None:
        self._transport = transport
        self._context = context
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.state = SessionState.AWAITING_INPUT
        self.usage = UsageTotals()
        self._close_code: int | None = None
        self._close_reason = ""
        self._log = logger.bind(session=self.session_id)

    async def run(self) -> None:
        """Serve the connection until the client leaves or the model is unreachable."""
        self._log.info("relay.session.start transport={} format={}", self._transport.name, self._context.codec.name)
        try:
            while True:
                self.state = SessionState.AWAITING_INPUT
                message = await self._transport.receive()
                if message is None:
                    break
                if await self.handle_message(message) is None:
                    break
        except TransportClosedError as exc:
            self._log.info("relay.transport.closed reason={}", exc)
        finally:
            self.state = SessionState.CLOSED
            await self._transport.close(code=self._close_code, reason=self._close_reason)
            self._log.info(
                "relay.session.end prompt_tokens={} completion_tokens={}",
                self.usage.prompt_tokens,
                self.usage.completion_tokens,
            )

    async def handle_message(self, message: str) -> TurnResult | None:
        """Run one cycle; returns ``None`` when the session must end."""
        codec = self._context.codec
        turns = self.build_transcript(message)
        await self._transport.send(codec.encode(turns))

        self.state = SessionState.STREAMING
        try:
            stream = await self._context.client.open_stream(codec, turns)
        except ModelStreamError as exc:
            self._log.error("relay.stream.open_failed error={}", exc)
            self._close_code = CLOSE_INTERNAL_ERROR
            self._close_reason = "model stream unavailable"
            await self._transport.send(f"{STREAM_UNAVAILABLE_PREFIX}{exc}")
            return None

        text, stream_error = await self._forward(stream)
        result = TurnResult(assistant_text=text, stream_error=stream_error)
        if stream_error is None:
            result = await self._run_script(text)

        await self._transport.send(codec.next_turn_marker)
        return result

    def build_transcript(self, message: str) -> Transcript:
        codec = self._context.codec
        if codec.is_transcript(message):
            turns = codec.decode(message)
            if turns:
                return turns
            self._log.warning("relay.transcript.empty length={}", len(message))
            return [Turn(role=Role.SYSTEM, content=self._context.system_prompt)]

        if codec.contains_sentinel(message):
            self._log.warning("relay.transcript.sentinel_in_message format={}", codec.name)
        return [
            Turn(role=Role.SYSTEM, content=self._context.system_prompt),
            Turn(role=Role.USER, content=message),
        ]

    async def _forward(self, stream: TokenStream) -> tuple[str, str | None]:
        codec = self._context.codec
        parts: list[str] = []
        iteration_usage = UsageTotals()
        async with aclosing(stream):
            try:
                async for chunk in stream:
                    if chunk.usage is not None:
                        iteration_usage.add(chunk.usage)
                    if not chunk.text:
                        continue
                    await self._transport.send(chunk.text)
                    parts.append(chunk.text)
            except ModelStreamError as exc:
                self._log.error("relay.stream.error error={} forwarded_chars={}", exc, sum(map(len, parts)))
                return "".join(parts), str(exc)

        if iteration_usage.total:
            self.usage.prompt_tokens += iteration_usage.prompt_tokens
            self.usage.completion_tokens += iteration_usage.completion_tokens
            self._log.info(
                "relay.usage prompt_tokens={} completion_tokens={} total={}",
                iteration_usage.prompt_tokens,
                iteration_usage.completion_tokens,
                self.usage.total,
            )

        text = "".join(parts)
        if codec.closes_dangling_script and (suffix := dangling_close(text, codec.delimiters)):
            await self._transport.send(suffix)
            text += suffix
        return text, None

    async def _run_script(self, text: str) -> TurnResult:
        codec = self._context.codec
        script = extract_script(text, codec.delimiters)
        if script is None:
            return TurnResult(assistant_text=text)

        self.state = SessionState.EXECUTING_SCRIPT
        self._log.info("relay.script.execute chars={}", len(script.raw_code))
        execution = await self._context.sandbox.run(script.raw_code)

        self.state = SessionState.EMITTING_TOOL_TURN
        await self._transport.send(codec.tool_header)
        if execution.error is not None:
            await self._transport.send(f"{ERROR_PREFIX}{execution.error}")
        else:
            await self._transport.send(execution.output)
        return TurnResult(assistant_text=text, script=script, execution=execution)
