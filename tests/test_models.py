"""Record models, options validation and settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from chatlogue.config import DEFAULT_BATCH_SIZE, get_settings
from chatlogue.models import (
    EVENT_ADAPTER,
    ChatPlatform,
    DoneEvent,
    ErrorEvent,
    MessageType,
    ParsedMessage,
    ParseOptions,
    Progress,
    ProgressStage,
)


def test_options_default_batch_size(tmp_path):
    path = tmp_path / "a.json"
    path.write_text("{}", encoding="utf-8")
    options = ParseOptions(file_path=path)
    assert options.batch_size == DEFAULT_BATCH_SIZE == 5000
    assert options.on_progress is None
    assert options.stream_batches is False


def test_options_batch_size_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CHATLOGUE_BATCH_SIZE", "250")
    path = tmp_path / "a.json"
    path.write_text("{}", encoding="utf-8")
    assert ParseOptions(file_path=path).batch_size == 250


@pytest.mark.parametrize("batch_size", [0, -5])
def test_options_reject_non_positive_batch(tmp_path, batch_size):
    path = tmp_path / "a.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ValidationError):
        ParseOptions(file_path=path, batch_size=batch_size)


def test_options_require_existing_file(tmp_path):
    with pytest.raises(ValidationError):
        ParseOptions(file_path=tmp_path / "missing.json")
    with pytest.raises(ValidationError):
        ParseOptions(file_path=tmp_path)


def test_options_accept_string_path_and_callback(tmp_path):
    path = tmp_path / "a.json"
    path.write_text("{}", encoding="utf-8")
    seen = []
    options = ParseOptions(file_path=str(path), on_progress=seen.append)
    assert options.file_path == path
    assert options.on_progress is not None


def test_settings_reject_invalid_values(monkeypatch):
    monkeypatch.setenv("CHATLOGUE_BATCH_SIZE", "0")
    with pytest.raises(ValidationError):
        get_settings()


def test_message_is_immutable():
    message = ParsedMessage(
        sender_platform_id="a", sender_account_name="A", timestamp=1, type=MessageType.TEXT
    )
    with pytest.raises(ValidationError):
        message.content = "changed"


@pytest.mark.parametrize(
    "done,total,expected",
    [(0, 200, 0.0), (50, 200, 25.0), (200, 200, 100.0), (0, 0, 100.0)],
)
def test_progress_percent(done, total, expected):
    progress = Progress(
        stage=ProgressStage.PARSING, bytes_processed=done, total_bytes=total, items_processed=0, message=""
    )
    assert progress.percent == expected


@pytest.mark.parametrize(
    "raw,expected",
    [("wechat", ChatPlatform.WECHAT), (" QQ ", ChatPlatform.QQ), ("icq", ChatPlatform.UNKNOWN), (None, ChatPlatform.UNKNOWN)],
)
def test_platform_normalize(raw, expected):
    assert ChatPlatform.normalize(raw) is expected


def test_event_adapter_discriminates():
    done = EVENT_ADAPTER.validate_python({"type": "done", "message_count": 3, "member_count": 1})
    assert isinstance(done, DoneEvent)
    error = EVENT_ADAPTER.validate_python(
        {
            "type": "error",
            "reason": "boom",
            "progress": {
                "stage": "error",
                "bytes_processed": 1,
                "total_bytes": 2,
                "items_processed": 0,
                "message": "boom",
            },
        }
    )
    assert isinstance(error, ErrorEvent)
    with pytest.raises(ValidationError):
        EVENT_ADAPTER.validate_python({"type": "bogus"})
