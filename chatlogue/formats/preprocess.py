"""Raw-input repair applied before structural decoding.

A preprocessor wraps the binary stream a plugin is about to decode and
returns a stream of the same logical format with structural defects
fixed. It must not change what the records mean. Plugins without a
preprocessor behave as if `IdentityPreprocessor` were configured.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import BinaryIO

_UTF8_BOM = b"\xef\xbb\xbf"
# Raw control bytes JSON forbids inside strings; TAB, LF and CR are left alone.
# Bytes below 0x20 never occur inside a multi-byte UTF-8 sequence, so
# matching them chunk by chunk is safe.
_CONTROL_BYTES = re.compile(rb"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class Preprocessor(ABC):
    @abstractmethod
    def wrap(self, stream: BinaryIO) -> BinaryIO:
        """Return a stream that yields the repaired bytes of ``stream``."""


class IdentityPreprocessor(Preprocessor):
    def wrap(self, stream: BinaryIO) -> BinaryIO:
        return stream


def _escape_control(match: re.Match[bytes]) -> bytes:
    return b"\\u%04x" % match.group()[0]


class _RepairingReader:
    def __init__(self, raw: BinaryIO) -> None:
        self._raw = raw
        self._at_start = True

    def read(self, size: int = -1) -> bytes:
        chunk = self._raw.read(size)
        if self._at_start and chunk:
            self._at_start = False
            if chunk.startswith(_UTF8_BOM):
                chunk = chunk[len(_UTF8_BOM):]
        return _CONTROL_BYTES.sub(_escape_control, chunk)

    def close(self) -> None:
        self._raw.close()

    @property
    def closed(self) -> bool:
        return self._raw.closed


class ControlCharacterRepair(Preprocessor):
    """Repair exports that copy raw control characters into JSON strings.

    Some exporters write chat text verbatim, so a message containing e.g.
    ``\\x1b`` or ``\\x00`` produces a file no strict JSON decoder accepts.
    Each such byte is rewritten as its ``\\u00XX`` escape, which decodes
    back to the same character. A leading UTF-8 byte order mark is dropped.
    """

    def wrap(self, stream: BinaryIO) -> BinaryIO:
        return _RepairingReader(stream)  # type: ignore[return-value]


__all__ = [
    "ControlCharacterRepair",
    "IdentityPreprocessor",
    "Preprocessor",
]
