import json

import pytest
import structlog

from chatlogue.lib.json import dumps, loads
from chatlogue.lib.log import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def test_json_logs_go_to_stderr(capsys):
    configure_logging(json_logs=True)
    get_logger("chatlogue.test").info("format_detected", feature="chatlab")
    captured = capsys.readouterr()
    assert captured.out == ""
    line = json.loads(captured.err.strip().splitlines()[-1])
    assert line["event"] == "format_detected"
    assert line["feature"] == "chatlab"
    assert line["level"] == "info"
    assert line["logger"] == "chatlogue.test"


def test_debug_filtered_unless_verbose(capsys):
    configure_logging(verbose=False)
    get_logger("chatlogue.test").debug("quiet_event")
    assert "quiet_event" not in capsys.readouterr().err
    configure_logging(verbose=True)
    get_logger("chatlogue.test").debug("loud_event")
    assert "loud_event" in capsys.readouterr().err


def test_json_helpers_handle_decimal():
    from decimal import Decimal

    assert loads(dumps({"a": Decimal("1.5"), "b": "中"})) == {"a": 1.5, "b": "中"}


def test_dumps_serializes_models_and_paths(tmp_path):
    from chatlogue.models import ChatPlatform, ChatType, MetaEvent, ParsedMeta

    event = MetaEvent(meta=ParsedMeta(name="g", platform=ChatPlatform.WECHAT, type=ChatType.GROUP))
    assert loads(dumps({"event": event, "file": tmp_path})) == {
        "event": {"type": "meta", "meta": {"name": "g", "platform": "wechat", "type": "group"}},
        "file": str(tmp_path),
    }


def test_logger_created_before_configuration_follows_it(capsys):
    early = get_logger("chatlogue.early")
    configure_logging(json_logs=True)
    early.info("after_configure", items=3)
    line = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert line["event"] == "after_configure"
    assert line["logger"] == "chatlogue.early"
    assert line["items"] == 3
