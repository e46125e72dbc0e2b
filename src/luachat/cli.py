"""Command line entry point for luachat."""

from __future__ import annotations

import asyncio

import typer

from luachat.app import build_relay_context, run_server
from luachat.app.bootstrap import build_sandbox
from luachat.config import load_settings
from luachat.errors import ConfigurationError
from luachat.logging_utils import configure_logging
from luachat.prompts import render_system_prompt
from luachat.transcript import Role, Turn, available_formats, get_codec

app = typer.Typer(
    name="luachat",
    help="Stream model replies over WebSocket and run their Lua in a sandbox.",
    add_completion=False,
    no_args_is_help=True,
)


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Listen address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Listen port"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model identifier"),
    transcript_format: str | None = typer.Option(
        None, "--format", help=f"Transcript format ({', '.join(available_formats())})"
    ),
    log_profile: str | None = typer.Option(None, "--log-profile", help="Log output style (default, console)"),
) -> None:
    """Serve the browser client on / and the chat socket on /chat."""

    settings = load_settings(
        host=host, port=port, model=model, transcript_format=transcript_format, log_profile=log_profile
    )
    if settings.log_profile not in ("default", "console"):
        typer.echo(f"error: unknown log profile {settings.log_profile!r}", err=True)
        raise typer.Exit(1)
    configure_logging(profile=settings.log_profile, level=settings.log_level)
    try:
        context = build_relay_context(settings)
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc
    run_server(context, host=settings.host, port=settings.port)


@app.command("run-lua")
def run_lua(code: str = typer.Argument(..., help="Lua source to execute")) -> None:
    """Execute a snippet in the sandbox and print what it printed."""

    settings = load_settings()
    result = asyncio.run(build_sandbox(settings).run(code))
    if result.error is not None:
        typer.echo(f"Got error: {result.error}", err=True)
        raise typer.Exit(1)
    typer.echo(result.output)


@app.command("encode-demo")
def encode_demo(
    message: str = typer.Argument(..., help="Bare user message"),
    transcript_format: str | None = typer.Option(None, "--format", help="Transcript format"),
) -> None:
    """Print the transcript a fresh conversation sends for MESSAGE."""

    settings = load_settings(transcript_format=transcript_format)
    try:
        codec = get_codec(settings.transcript_format)
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc
    turns = [
        Turn(role=Role.SYSTEM, content=render_system_prompt(codec.delimiters, settings.system_prompt)),
        Turn(role=Role.USER, content=message),
    ]
    typer.echo(codec.encode(turns))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
