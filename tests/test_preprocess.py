"""Raw-input repair hooks."""

from __future__ import annotations

import io

from chatlogue.formats import ChatLabParser, ControlCharacterRepair, EchotraceParser, IdentityPreprocessor
from chatlogue.models import ParseOptions
from tests.factories import echotrace_record, echotrace_text


def test_identity_returns_same_stream():
    stream = io.BytesIO(b"{}")
    assert IdentityPreprocessor().wrap(stream) is stream


def test_control_bytes_are_escaped():
    wrapped = ControlCharacterRepair().wrap(io.BytesIO(b'{"a": "x\x01y\x1bz\tq\n"}'))
    assert wrapped.read() == b'{"a": "x\\u0001y\\u001bz\tq\n"}'


def test_leading_bom_is_removed_once():
    wrapped = ControlCharacterRepair().wrap(io.BytesIO(b"\xef\xbb\xbf{}\xef\xbb\xbf"))
    assert wrapped.read() == b"{}\xef\xbb\xbf"


def test_zero_length_read_does_not_consume_bom_check():
    wrapped = ControlCharacterRepair().wrap(io.BytesIO(b"\xef\xbb\xbf[]"))
    assert wrapped.read(0) == b""
    assert wrapped.read() == b"[]"


def test_multibyte_text_is_untouched():
    text = '{"content": "你好，世界"}'.encode("utf-8")
    assert ControlCharacterRepair().wrap(io.BytesIO(text)).read() == text


def test_close_reaches_underlying_stream():
    raw = io.BytesIO(b"")
    wrapped = ControlCharacterRepair().wrap(raw)
    wrapped.close()
    assert raw.closed
    assert wrapped.closed


def test_echotrace_repairs_raw_control_characters(tmp_path):
    records = [echotrace_record(i, content=f"line<BEL>{i}<NUL>") for i in range(3)]
    # json.dumps would escape control characters; write them raw like the exporter does
    text = echotrace_text(records).replace("<BEL>", "\x07").replace("<NUL>", "\x00")
    path = tmp_path / "dirty.json"
    path.write_bytes(b"\xef\xbb\xbf" + text.encode("utf-8"))

    result = EchotraceParser().parse(ParseOptions(file_path=path)).collect()

    assert result.message_count == 3
    assert result.meta.name == "Weekend Hikers"
    assert [m.content for m in result.messages] == [f"line\x07{i}\x00" for i in range(3)]


def test_plugins_without_repair_use_identity():
    assert ChatLabParser.preprocessor is None
    assert isinstance(EchotraceParser.preprocessor, ControlCharacterRepair)
