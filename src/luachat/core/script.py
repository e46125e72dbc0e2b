"""Script block detection in streamed assistant output."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScriptDelimiters:
    """Opening and closing markers around an embedded script."""

    open: str
    close: str


@dataclass(frozen=True)
class ScriptBlock:
    """Source code lifted out of one assistant reply."""

    raw_code: str


def extract_script(text: str, delimiters: ScriptDelimiters) -> ScriptBlock | None:
    """Return the code between the first opening marker and the next closing marker."""

    start = text.find(delimiters.open)
    if start == -1:
        return None
    body_start = start + len(delimiters.open)
    end = text.find(delimiters.close, body_start)
    if end == -1:
        return None
    return ScriptBlock(raw_code=text[body_start:end])


def dangling_close(text: str, delimiters: ScriptDelimiters) -> str:
    """Return the text needed to close a block the model opened but never closed.

    Completion endpoints stop on the closing fence, so it never reaches the
    output. Returns an empty string when there is nothing to close.
    """

    start = text.find(delimiters.open)
    if start == -1:
        return ""
    if text.find(delimiters.close, start + len(delimiters.open)) != -1:
        return ""
    separator = "" if text.endswith("\n") else "\n"
    return f"{separator}{delimiters.close}"
