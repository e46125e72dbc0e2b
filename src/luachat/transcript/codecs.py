"""Wire codecs between turn sequences and sentinel-delimited text blobs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import StrEnum
from typing import ClassVar

from luachat.core.script import ScriptDelimiters
from luachat.errors import UnknownTranscriptFormatError
from luachat.transcript.types import Role, Transcript, Turn


class ApiMode(StrEnum):
    """Which completion endpoint a format is consumed by."""

    CHAT = "chat"
    COMPLETION = "completion"


class TranscriptCodec(ABC):
    """Strategy for one transcript wire format.

    Decoding is permissive: fragments without a recognizable role header, with an
    unknown role, or with empty content are skipped. Encoding is canonical and ends
    with an open assistant header so the model continues as the next assistant turn.
    Content is not escaped; text containing a sentinel desynchronizes the blob.
    """

    name: ClassVar[str]
    api_mode: ClassVar[ApiMode]
    delimiters: ClassVar[ScriptDelimiters]
    sentinels: ClassVar[tuple[str, ...]]
    stop_sequences: ClassVar[tuple[str, ...]] = ()
    closes_dangling_script: ClassVar[bool] = False

    @abstractmethod
    def is_transcript(self, raw: str) -> bool:
        """Whether ``raw`` is a full encoded transcript rather than a bare message."""

    @abstractmethod
    def encode(self, turns: Iterable[Turn]) -> str:
        """Render turns followed by an open assistant header."""

    @abstractmethod
    def decode(self, blob: str) -> Transcript:
        """Parse a blob back into turns."""

    @property
    @abstractmethod
    def tool_header(self) -> str:
        """Separator written before sandbox output."""

    @property
    @abstractmethod
    def next_turn_marker(self) -> str:
        """Separator that hands the conversation back to the user."""

    def contains_sentinel(self, text: str) -> bool:
        return any(sentinel in text for sentinel in self.sentinels)

    def to_chat_messages(self, turns: Iterable[Turn]) -> list[dict[str, str]]:
        return [{"role": str(turn.role), "content": turn.content} for turn in turns]


class HeaderIdCodec(TranscriptCodec):
    """Llama 3 header-id template."""

    name = "header_id"
    api_mode = ApiMode.CHAT
    delimiters = ScriptDelimiters(open="<lua>", close="</lua>")

    BEGIN_OF_TEXT = "<|begin_of_text|>"
    START_HEADER = "<|start_header_id|>"
    END_HEADER = "<|end_header_id|>"
    END_OF_TURN = "<|eot_id|>"
    TOOL_PREFIX = "tool:"

    sentinels = (BEGIN_OF_TEXT, START_HEADER, END_HEADER, END_OF_TURN)

    def is_transcript(self, raw: str) -> bool:
        # Clients may truncate the closing "|>" of the marker.
        return raw.startswith("<|begin_of_text")

    def encode(self, turns: Iterable[Turn]) -> str:
        parts = [self.BEGIN_OF_TEXT]
        for index, turn in enumerate(turns):
            if index > 0:
                parts.append(self._separator)
            if turn.role is Role.TOOL:
                parts.append(self._header(Role.ASSISTANT))
                parts.append(f"{self.TOOL_PREFIX}\n")
            else:
                parts.append(self._header(turn.role))
            parts.append(turn.content)
        parts.append(self._separator)
        parts.append(self._header(Role.ASSISTANT))
        return "".join(parts)

    def decode(self, blob: str) -> Transcript:
        turns: Transcript = []
        for fragment in blob.split(self.END_OF_TURN):
            turn = self._decode_fragment(fragment.strip())
            if turn is not None:
                turns.append(turn)
        return turns

    @property
    def tool_header(self) -> str:
        return f"{self._separator}{self._header(Role.ASSISTANT)}{self.TOOL_PREFIX}\n"

    @property
    def next_turn_marker(self) -> str:
        return f"{self._separator}{self._header(Role.USER)}"

    def to_chat_messages(self, turns: Iterable[Turn]) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        for turn in turns:
            if turn.role is Role.TOOL:
                # Chat endpoints want a tool_call_id for the tool role; the model is
                # prompted to read sandbox output as an assistant "tool:" line instead.
                messages.append({"role": "assistant", "content": f"{self.TOOL_PREFIX}\n{turn.content}"})
            else:
                messages.append({"role": str(turn.role), "content": turn.content})
        return messages

    @property
    def _separator(self) -> str:
        return f"\n{self.END_OF_TURN}\n"

    def _header(self, role: Role) -> str:
        return f"{self.START_HEADER}{role}{self.END_HEADER}\n"

    def _decode_fragment(self, fragment: str) -> Turn | None:
        if not fragment:
            return None
        header_start = fragment.find(self.START_HEADER)
        header_end = fragment.find(self.END_HEADER)
        if header_start == -1 or header_end == -1 or header_end < header_start:
            return None

        role_name = fragment[header_start + len(self.START_HEADER) : header_end]
        content = fragment[header_end + len(self.END_HEADER) :].strip()
        role = Role.parse(role_name)
        if role is None or not content:
            return None

        if role is Role.SYSTEM:
            content = content.removeprefix(self.BEGIN_OF_TEXT).strip()
        elif role is Role.ASSISTANT and content.startswith(self.TOOL_PREFIX):
            role = Role.TOOL
            content = content[len(self.TOOL_PREFIX) :].strip()

        if not content:
            return None
        return Turn(role=role, content=content)


class ChatMarkupCodec(TranscriptCodec):
    """ChatML template consumed through the raw text completion endpoint."""

    name = "chat_markup"
    api_mode = ApiMode.COMPLETION
    delimiters = ScriptDelimiters(open="```lua", close="```")
    closes_dangling_script = True

    IM_START = "<|im_start|>"
    IM_END = "<|im_end|>"

    sentinels = (IM_START, IM_END)
    stop_sequences = (IM_END, IM_START)

    def is_transcript(self, raw: str) -> bool:
        return raw.startswith(self.IM_START)

    def encode(self, turns: Iterable[Turn]) -> str:
        parts = [f"{self._header(turn.role)}{turn.content}{self.IM_END}\n" for turn in turns]
        parts.append(self._header(Role.ASSISTANT))
        return "".join(parts)

    def decode(self, blob: str) -> Transcript:
        turns: Transcript = []
        for fragment in blob.split(self.IM_END):
            turn = self._decode_fragment(fragment.strip())
            if turn is not None:
                turns.append(turn)
        return turns

    @property
    def tool_header(self) -> str:
        return f"\n{self.IM_END}\n{self._header(Role.TOOL)}"

    @property
    def next_turn_marker(self) -> str:
        return f"\n{self.IM_END}\n{self._header(Role.USER)}"

    def _header(self, role: Role) -> str:
        return f"{self.IM_START}{role}\n"

    def _decode_fragment(self, fragment: str) -> Turn | None:
        start = fragment.find(self.IM_START)
        if start == -1:
            return None
        role_name, newline, body = fragment[start + len(self.IM_START) :].partition("\n")
        if not newline:
            return None
        role = Role.parse(role_name)
        content = body.strip()
        if role is None or not content:
            return None
        return Turn(role=role, content=content)


_CODECS: dict[str, type[TranscriptCodec]] = {
    HeaderIdCodec.name: HeaderIdCodec,
    ChatMarkupCodec.name: ChatMarkupCodec,
}


def available_formats() -> list[str]:
    return sorted(_CODECS)


def get_codec(name: str) -> TranscriptCodec:
    """Instantiate the codec registered under ``name``."""
    try:
        codec_cls = _CODECS[name]
    except KeyError:
        raise UnknownTranscriptFormatError(
            f"Unknown transcript format {name!r}; expected one of {', '.join(available_formats())}."
        ) from None
    return codec_cls()
