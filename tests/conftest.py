import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chatlogue.formats import default_registry  # noqa: E402


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "CHATLOGUE_BATCH_SIZE",
        "CHATLOGUE_DETECT_HEAD_BYTES",
        "CHATLOGUE_HEADER_HEAD_BYTES",
        "CHATLOGUE_LOG_JSON",
        "CHATLOGUE_VERBOSE",
    ):
        monkeypatch.delenv(name, raising=False)
