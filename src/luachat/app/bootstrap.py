"""Startup helpers turning settings into relay collaborators."""

from __future__ import annotations

from luachat.config import Settings
from luachat.core.model_client import CompletionClient, OpenAICompletionClient
from luachat.core.relay import RelayContext, Sandbox
from luachat.core.sandbox import LuaSandbox
from luachat.prompts import render_system_prompt
from luachat.transcript.codecs import get_codec


def build_sandbox(settings: Settings) -> LuaSandbox:
    return LuaSandbox(
        instruction_limit=settings.sandbox_instruction_limit,
        memory_limit_bytes=settings.sandbox_memory_limit_bytes,
        time_limit_seconds=settings.sandbox_time_limit_seconds,
    )


def build_relay_context(
    settings: Settings,
    *,
    client: CompletionClient | None = None,
    sandbox: Sandbox | None = None,
) -> RelayContext:
    """Validate settings and assemble the shared, read-only relay context."""

    codec = get_codec(settings.transcript_format)
    if client is None:
        client = OpenAICompletionClient(
            model=settings.require_model(),
            api_key=settings.require_api_key(),
            base_url=settings.base_url,
            max_tokens=settings.max_tokens,
        )
    return RelayContext(
        codec=codec,
        client=client,
        sandbox=sandbox or build_sandbox(settings),
        system_prompt=render_system_prompt(codec.delimiters, settings.system_prompt),
    )
