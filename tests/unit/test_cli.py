"""Tests for assistant_transport.cli: the click entry points and rich output."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner
from rich.console import Console

from assistant_transport.cli.main import cli
from assistant_transport.cli.output import StreamPrinter, frames_table
from assistant_transport.core.config import ENV_API
from assistant_transport.stream.decoder import encode_frame
from assistant_transport.types.frames import FinishMessage, StateSnapshot, TextDelta
from assistant_transport.types.messages import Message, TextContent, ToolCallContent


class TestDecodeCommand:
    def test_lists_frames(self, tmp_path: Path):
        capture = tmp_path / "stream.txt"
        capture.write_bytes(b"".join(
            encode_frame(f) for f in [TextDelta("Hello"), StateSnapshot({"n": 1}), FinishMessage()]
        ))
        result = CliRunner().invoke(cli, ["decode", str(capture)])
        assert result.exit_code == 0
        assert "TextDelta" in result.output
        assert "StateSnapshot" in result.output
        assert "FinishMessage" in result.output

    def test_malformed_capture_exits_nonzero(self, tmp_path: Path):
        capture = tmp_path / "bad.txt"
        capture.write_bytes(b'0:"ok"\nq:1\n')
        result = CliRunner().invoke(cli, ["decode", str(capture)])
        assert result.exit_code == 1
        assert "Unknown frame code" in result.output


class TestSendCommand:
    def test_missing_endpoint_is_a_usage_error(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(ENV_API, raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        result = CliRunner().invoke(cli, ["send", "hi"])
        assert result.exit_code == 2
        assert ENV_API in result.output

    def test_invalid_state_json(self):
        result = CliRunner().invoke(cli, ["send", "hi", "--api", "http://x.test", "--state", "{nope"])
        assert result.exit_code == 2
        assert "--state" in result.output


class TestStreamPrinter:
    def _console(self) -> Console:
        return Console(record=True, width=120, force_terminal=False)

    def test_prints_only_new_text(self):
        console = self._console()
        printer = StreamPrinter(console)
        printer.update([Message(id="a", role="assistant", content=(TextContent("Hel"),))])
        printer.update([Message(id="a", role="assistant", content=(TextContent("Hello"),))])
        assert console.export_text() == "Hello"

    def test_user_messages_are_skipped(self):
        console = self._console()
        StreamPrinter(console).update([Message(id="u", role="user", content=(TextContent("hi"),))])
        assert console.export_text() == ""

    def test_tool_call_and_result_lines(self):
        console = self._console()
        printer = StreamPrinter(console)
        call = ToolCallContent("t1", "echo", '{"text":"x"}')
        printer.update([Message(id="a", role="assistant", content=(call,))])
        printer.update([Message(id="a", role="assistant", content=(call,))])
        done = ToolCallContent("t1", "echo", '{"text":"x"}', result="x", has_result=True)
        printer.update([Message(id="a", role="assistant", content=(done,))])
        text = console.export_text()
        assert text.count("[Tool: echo]") == 1
        assert "[Result echo]" in text

    def test_frames_table(self):
        table = frames_table([TextDelta("a"), FinishMessage()])
        assert table.row_count == 2
