import pytest

from luachat.errors import UnknownTranscriptFormatError
from luachat.transcript import ChatMarkupCodec, HeaderIdCodec, Role, Turn, get_codec

CONVERSATION = [
    Turn(Role.SYSTEM, "Be concise."),
    Turn(Role.USER, "What is 8+8?"),
    Turn(Role.ASSISTANT, "<lua>\nprint(8+8)\n</lua>"),
    Turn(Role.TOOL, "16"),
    Turn(Role.ASSISTANT, "8+8 is 16."),
    Turn(Role.USER, "Thanks"),
]


def test_header_id_encode_is_canonical() -> None:
    blob = HeaderIdCodec().encode([Turn(Role.SYSTEM, "S"), Turn(Role.USER, "Hi")])
    assert blob == (
        "<|begin_of_text|><|start_header_id|>system<|end_header_id|>\nS"
        "\n<|eot_id|>\n<|start_header_id|>user<|end_header_id|>\nHi"
        "\n<|eot_id|>\n<|start_header_id|>assistant<|end_header_id|>\n"
    )


def test_header_id_writes_tool_turn_as_assistant_tool_line() -> None:
    blob = HeaderIdCodec().encode([Turn(Role.TOOL, "16")])
    assert "<|start_header_id|>assistant<|end_header_id|>\ntool:\n16" in blob


def test_chat_markup_encode_is_canonical() -> None:
    blob = ChatMarkupCodec().encode([Turn(Role.SYSTEM, "S"), Turn(Role.USER, "Hi")])
    assert blob == "<|im_start|>system\nS<|im_end|>\n<|im_start|>user\nHi<|im_end|>\n<|im_start|>assistant\n"


@pytest.mark.parametrize("codec", [HeaderIdCodec(), ChatMarkupCodec()], ids=lambda codec: codec.name)
def test_decode_inverts_encode(codec) -> None:
    assert codec.decode(codec.encode(CONVERSATION)) == CONVERSATION


@pytest.mark.parametrize("codec", [HeaderIdCodec(), ChatMarkupCodec()], ids=lambda codec: codec.name)
def test_decode_reads_back_what_the_relay_streamed(codec) -> None:
    turns = CONVERSATION[:2]
    script = f"{codec.delimiters.open}\nprint(8+8)\n{codec.delimiters.close}"
    streamed = codec.encode(turns) + script + codec.tool_header + "16" + codec.next_turn_marker + "And 2+2?"

    assert codec.decode(streamed) == [
        *turns,
        Turn(Role.ASSISTANT, script),
        Turn(Role.TOOL, "16"),
        Turn(Role.USER, "And 2+2?"),
    ]


def test_header_id_skips_fragment_without_role_header() -> None:
    good = (
        "<|begin_of_text|><|start_header_id|>system<|end_header_id|>\nS"
        "\n<|eot_id|>\n<|start_header_id|>user<|end_header_id|>\nHi"
        "\n<|eot_id|>\n<|start_header_id|>assistant<|end_header_id|>\n"
    )
    malformed = good.replace("\n<|eot_id|>\n", "\n<|eot_id|>\nstray text with no header\n<|eot_id|>\n", 1)
    codec = HeaderIdCodec()

    assert codec.decode(malformed) == codec.decode(good) == [Turn(Role.SYSTEM, "S"), Turn(Role.USER, "Hi")]


def test_header_id_skips_unknown_roles_and_empty_content() -> None:
    blob = (
        "<|begin_of_text|><|start_header_id|>narrator<|end_header_id|>\nOnce upon a time"
        "<|eot_id|><|start_header_id|>user<|end_header_id|>\n   \n"
        "<|eot_id|><|start_header_id|>user<|end_header_id|>\n  hello  \n"
    )
    assert HeaderIdCodec().decode(blob) == [Turn(Role.USER, "hello")]


def test_header_id_strips_begin_marker_from_system_content() -> None:
    blob = "<|start_header_id|>system<|end_header_id|>\n<|begin_of_text|>Be brief<|eot_id|>"
    assert HeaderIdCodec().decode(blob) == [Turn(Role.SYSTEM, "Be brief")]


def test_chat_markup_skips_fragment_without_role_line() -> None:
    blob = "<|im_start|>system\nS<|im_end|>\ngarbage<|im_end|>\n<|im_start|>user<|im_end|>\n<|im_start|>user\nHi<|im_end|>"
    assert ChatMarkupCodec().decode(blob) == [Turn(Role.SYSTEM, "S"), Turn(Role.USER, "Hi")]


def test_transcript_detection() -> None:
    header = HeaderIdCodec()
    markup = ChatMarkupCodec()
    assert header.is_transcript("<|begin_of_text|><|start_header_id|>user")
    assert header.is_transcript("<|begin_of_text")
    assert not header.is_transcript("What is 8+8?")
    assert markup.is_transcript("<|im_start|>user\nhi")
    assert not markup.is_transcript("hi <|im_start|>")


def test_sentinel_detection() -> None:
    assert HeaderIdCodec().contains_sentinel("say <|eot_id|> please")
    assert not HeaderIdCodec().contains_sentinel("<|im_end|>")
    assert ChatMarkupCodec().contains_sentinel("<|im_end|>")


def test_header_id_chat_messages_carry_tool_output_as_assistant() -> None:
    messages = HeaderIdCodec().to_chat_messages([Turn(Role.USER, "hi"), Turn(Role.TOOL, "16")])
    assert messages == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "tool:\n16"},
    ]


def test_get_codec() -> None:
    assert isinstance(get_codec("header_id"), HeaderIdCodec)
    assert isinstance(get_codec("chat_markup"), ChatMarkupCodec)
    with pytest.raises(UnknownTranscriptFormatError):
        get_codec("llama2")
