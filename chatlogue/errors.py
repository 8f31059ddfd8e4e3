"""Chatlogue error hierarchy.

All project exceptions inherit from ChatlogueError, enabling
``except ChatlogueError`` at top-level boundaries (the CLI) while deeper
code catches the specific subclass.

Hierarchy:
    ChatlogueError
    ├── RegistryError               # duplicate or unknown feature ids
    ├── FormatNotRecognizedError    # no registered feature matched a file
    └── ParseFailedError            # a parse ended with an error event

Faults inside a running parse are not raised: they end the event
sequence with an ``ErrorEvent``. ``ParseFailedError`` only exists for
callers that collapse a sequence into a result.
"""

from __future__ import annotations

from pathlib import Path


class ChatlogueError(Exception):
    """Base class for all Chatlogue errors."""


class RegistryError(ChatlogueError):
    """Raised for invalid registry operations."""


class FormatNotRecognizedError(ChatlogueError):
    """No registered format feature matched the candidate file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Format not recognized: {self.path}")


class ParseFailedError(ChatlogueError):
    """A parse terminated with an error event."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
