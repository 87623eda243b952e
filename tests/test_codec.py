"""
Tests for the JSON IPC wire codec.
"""

import json

import pytest

from mpv_session.models.commands import Command
from mpv_session.streaming.codec import (
    EventFrame,
    FrameDecoder,
    PropertyChangeFrame,
    ReplyFrame,
    classify,
    encode_command,
)
from mpv_session.utils.errors import ProtocolError


class TestEncodeCommand:
    """Test outbound frame encoding."""

    def test_compact_newline_terminated(self):
        payload = encode_command(1, Command.build("get_property", "volume"))
        assert payload == b'{"request_id":1,"command":["get_property","volume"]}\n'

    def test_optional_arguments_omitted(self):
        payload = encode_command(7, Command.build("seek", 10, None))
        assert json.loads(payload) == {"request_id": 7, "command": ["seek", 10]}

    def test_non_ascii_arguments(self):
        payload = encode_command(3, Command.build("show-text", "héllo"))
        assert payload.endswith(b"\n")
        assert json.loads(payload.decode("utf-8"))["command"] == ["show-text", "héllo"]


class TestClassify:
    """Test frame classification."""

    def test_event(self):
        frame = classify({"event": "file-loaded"})
        assert isinstance(frame, EventFrame)
        assert frame.event == "file-loaded"
        assert frame.raw == {"event": "file-loaded"}

    def test_property_change(self):
        frame = classify({"event": "property-change", "id": 1, "name": "volume", "data": 0.8})
        assert isinstance(frame, PropertyChangeFrame)
        assert frame.name == "volume"
        assert frame.data == 0.8
        assert frame.id == 1

    def test_reply(self):
        frame = classify({"request_id": 4, "error": "success", "data": 0.5})
        assert isinstance(frame, ReplyFrame)
        assert frame.ok
        assert frame.data == 0.5

    def test_failing_reply(self):
        frame = classify({"request_id": 4, "error": "property not found"})
        assert isinstance(frame, ReplyFrame)
        assert not frame.ok
        assert frame.data is None


class TestFrameDecoder:
    """Test incremental decoding."""

    def test_line_split_across_chunks(self):
        decoder = FrameDecoder()
        assert decoder.feed(b'{"event":"pau') == []
        assert decoder.pending == '{"event":"pau'

        frames = decoder.feed(b'se"}\n')
        assert len(frames) == 1
        assert frames[0].event == "pause"
        assert decoder.pending == ""

    def test_multiple_lines_in_one_chunk(self):
        decoder = FrameDecoder()
        frames = decoder.feed(
            b'{"event":"idle"}\r\n{"request_id":1,"error":"success"}\n{"event":"se'
        )
        assert [type(f) for f in frames] == [EventFrame, ReplyFrame]
        assert decoder.pending == '{"event":"se'

    def test_blank_lines_ignored(self):
        decoder = FrameDecoder()
        frames = decoder.feed(b'\n\r\n  \n{"event":"idle"}\n')
        assert len(frames) == 1
        assert decoder.line_count == 1

    def test_multibyte_character_split_across_chunks(self):
        decoder = FrameDecoder()
        encoded = '{"event":"client-message","args":["é"]}\n'.encode("utf-8")
        split = encoded.index(b"\xc3") + 1

        assert decoder.feed(encoded[:split]) == []
        frames = decoder.feed(encoded[split:])
        assert frames[0].raw["args"] == ["é"]

    def test_malformed_line_does_not_affect_neighbours(self):
        errors = []
        decoder = FrameDecoder(on_error=errors.append)

        frames = decoder.feed(b'{"event":"a"}\n{not json}\n{"event":"b"}\n')

        assert [f.event for f in frames] == ["a", "b"]
        assert len(errors) == 1
        assert isinstance(errors[0], ProtocolError)
        assert errors[0].line == "{not json}"
        assert decoder.error_count == 1

    @pytest.mark.parametrize("line", [b"[1, 2]", b'"text"', b"42", b"null"])
    def test_non_object_rejected(self, line):
        errors = []
        decoder = FrameDecoder(on_error=errors.append)

        assert decoder.feed(line + b"\n") == []
        assert len(errors) == 1
        assert "Expected JSON object" in errors[0].message

    def test_reset_drops_partial_line(self):
        decoder = FrameDecoder()
        decoder.feed(b'{"event":"half')
        decoder.reset()

        frames = decoder.feed(b'{"event":"whole"}\n')
        assert [f.event for f in frames] == ["whole"]
