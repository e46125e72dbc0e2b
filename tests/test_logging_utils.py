import sys

from loguru import logger
from rich.logging import RichHandler

from luachat import logging_utils


def test_configure_logging_installs_one_sink_with_session_context(monkeypatch, capsys) -> None:
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", None)
    monkeypatch.setattr(sys, "stderr", sys.stdout)
    try:
        logging_utils.configure_logging(level="debug")
        logging_utils.configure_logging(level="debug")
        logger.bind(session="abc123").info("relay.usage total={}", 7)
        logger.info("server.start")

        lines = capsys.readouterr().out.splitlines()
    finally:
        logger.remove()

    assert len(lines) == 2
    assert "| abc123 | relay.usage total=7" in lines[0]
    assert "| - | server.start" in lines[1]


class RecordingLogger:
    def __init__(self) -> None:
        self.sinks: list[tuple[object, dict]] = []
        self.removed = 0

    def remove(self) -> None:
        self.removed += 1

    def configure(self, **_kwargs) -> None:
        return None

    def add(self, sink, **kwargs) -> int:
        self.sinks.append((sink, kwargs))
        return len(self.sinks)


def test_console_profile_renders_through_rich(monkeypatch) -> None:
    recording = RecordingLogger()
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", None)
    monkeypatch.setattr(logging_utils, "logger", recording)

    logging_utils.configure_logging(profile="console", level="info")

    assert recording.removed == 1
    [(sink, options)] = recording.sinks
    assert isinstance(sink, RichHandler)
    assert options["level"] == "INFO"
    assert options["format"] == logging_utils._PROFILE_FORMATS["console"]
