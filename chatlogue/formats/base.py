"""Format features and the shared streaming pipeline.

A format plugin advertises one `FormatFeature` (the fingerprint the
registry matches a file prefix against) and turns a matching file into
the event sequence::

    progress, meta, [progress ...], members, messages ..., progress(done), done

or stops early with a single ``error`` event when the file cannot be
decoded. `StreamingParser` implements that sequence once; plugins only
describe their header and how one source record becomes a `ParsedMessage`.

Besides the records a plugin's ``normalize`` rejects by returning ``None``,
the pipeline drops any record whose `ParsedMessage` fails validation. A
record with a sender but a non-numeric timestamp (``"2023-12-20"``) is
therefore skipped and does not count towards messages or members.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Generator
from pathlib import Path
from typing import Any, ClassVar, Optional

import ijson
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from chatlogue.config import get_settings
from chatlogue.lib.json import JSONDecodeError, loads
from chatlogue.lib.log import get_logger
from chatlogue.models import (
    ChatPlatform,
    DoneEvent,
    ErrorEvent,
    MembersEvent,
    MessagesEvent,
    MetaEvent,
    ParsedMember,
    ParsedMessage,
    ParsedMeta,
    ParseEvent,
    ParseOptions,
    Progress,
    ProgressCallback,
    ProgressEvent,
    ProgressStage,
)
from chatlogue.streaming import CountingReader, EventStream, decode_head, file_size

from .preprocess import IdentityPreprocessor, Preprocessor

logger = get_logger(__name__)

UNKNOWN_CHAT_NAME = "Unknown chat"

_IDENTITY = IdentityPreprocessor()


class Signatures(BaseModel):
    """Content checks run against a bounded file prefix."""

    model_config = ConfigDict(frozen=True)

    head: tuple[re.Pattern[str], ...] = ()
    required_fields: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.head and not self.required_fields


class FormatFeature(BaseModel):
    """Static fingerprint of one export format."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    platform: ChatPlatform
    priority: int = 0
    extensions: frozenset[str] = frozenset()
    signatures: Signatures = Signatures()

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(
                ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value
            )
        return value

    def accepts_extension(self, path: Path) -> bool:
        """Advisory suffix filter; a feature without extensions accepts any file."""
        if not self.extensions:
            return True
        return path.suffix.lower() in self.extensions

    def matches_head(self, head: str) -> bool:
        """True when every configured signature condition holds for ``head``.

        Required fields are checked textually as JSON-like keys, not by
        decoding: the prefix is usually a truncated document.
        """
        if self.signatures.is_empty:
            return False
        for pattern in self.signatures.head:
            if not pattern.search(head):
                return False
        for field_name in self.signatures.required_fields:
            if not re.search(rf'"{re.escape(field_name)}"\s*:', head):
                return False
        return True


class FormatPlugin(ABC):
    """One export format: its fingerprint, parse entry point and optional repair."""

    feature: ClassVar[FormatFeature]
    preprocessor: ClassVar[Optional[Preprocessor]] = None

    @property
    def id(self) -> str:
        return self.feature.id

    def matches(self, head: str) -> bool:
        """Whether this plugin recognizes a file from its decoded prefix."""
        return self.feature.matches_head(head)

    @abstractmethod
    def parse(self, options: ParseOptions) -> EventStream:
        """Start a lazy parse of ``options.file_path``."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.feature.id!r}>"


# =============================================================================
# Helpers shared by plugins
# =============================================================================


def extract_header_object(head: str, key: str) -> Optional[dict[str, Any]]:
    """Best-effort lookup of a small flat object stored under ``key`` in ``head``.

    Non-authoritative: the regex only finds an object without nested
    braces, and the prefix may cut it short. Callers must treat ``None``
    as "use defaults".
    """
    match = re.search(rf'"{re.escape(key)}"\s*:\s*(\{{[^}}]+\}})', head)
    if not match:
        return None
    try:
        value = loads(match.group(1))
    except JSONDecodeError:
        logger.debug("session_header_unreadable", key=key)
        return None
    return value if isinstance(value, dict) else None


def name_from_path(path: Path) -> str:
    name = re.sub(r"\.json$", "", path.name, flags=re.IGNORECASE)
    return name or UNKNOWN_CHAT_NAME


def text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    return str(value)


def _progress(
    callback: Optional[ProgressCallback],
    stage: ProgressStage,
    bytes_processed: int,
    total_bytes: int,
    items_processed: int,
    message: str,
) -> Progress:
    progress = Progress(
        stage=stage,
        bytes_processed=bytes_processed,
        total_bytes=total_bytes,
        items_processed=items_processed,
        message=message,
    )
    if callback is not None:
        callback(progress)
    return progress


# =============================================================================
# Streaming pipeline
# =============================================================================


class StreamingParser(FormatPlugin):
    """Decode a JSON export incrementally and normalize its records.

    Subclasses set ``records_prefix`` (the ijson prefix of the record
    array) and implement `read_meta` and `normalize`.
    """

    records_prefix: ClassVar[str] = "messages.item"

    @abstractmethod
    def read_meta(self, head: str, path: Path) -> ParsedMeta:
        """Build the conversation meta from the (preprocessed) file prefix.

        Must not raise for malformed headers; fall back to defaults.
        """

    @abstractmethod
    def normalize(self, record: dict[str, Any]) -> Optional[ParsedMessage]:
        """Turn one source record into a message, or ``None`` to drop it."""

    def parse(self, options: ParseOptions) -> EventStream:
        settings = get_settings()
        events = self._events(options, header_bytes=settings.header_head_bytes)
        return EventStream(events, label=str(options.file_path))

    def _wrap(self, stream: Any) -> Any:
        return (self.preprocessor or _IDENTITY).wrap(stream)

    def _read_header(self, path: Path, size: int) -> str:
        with open(path, "rb") as raw:
            return decode_head(self._wrap(raw).read(size))

    def _accept(self, record: Any) -> Optional[ParsedMessage]:
        if not isinstance(record, dict):
            return None
        try:
            return self.normalize(record)
        except ValidationError:
            return None

    def _events(self, options: ParseOptions, *, header_bytes: int) -> Generator[ParseEvent, None, None]:
        path = options.file_path
        batch_size = options.batch_size
        on_progress = options.on_progress
        log = logger.bind(format=self.feature.id, source=str(path))

        total_bytes = file_size(path)
        log.info("parse_started", total_bytes=total_bytes, batch_size=batch_size)
        yield ProgressEvent(
            progress=_progress(on_progress, ProgressStage.PARSING, 0, total_bytes, 0, "Starting parse...")
        )

        members: dict[str, str] = {}
        pending: list[list[ParsedMessage]] = []
        batch: list[ParsedMessage] = []
        items = 0
        bytes_read = 0
        try:
            head = self._read_header(path, header_bytes)
            yield MetaEvent(meta=self.read_meta(head, path))

            with open(path, "rb") as raw:
                reader = CountingReader(raw)
                records = ijson.items(self._wrap(reader), self.records_prefix, use_float=True)
                for record in records:
                    bytes_read = reader.bytes_read
                    message = self._accept(record)
                    if message is None:
                        continue
                    # Later observations win: display names can change mid-conversation.
                    members[message.sender_platform_id] = message.sender_account_name
                    batch.append(message)
                    items += 1
                    if len(batch) >= batch_size:
                        yield ProgressEvent(
                            progress=_progress(
                                on_progress,
                                ProgressStage.PARSING,
                                bytes_read,
                                total_bytes,
                                items,
                                f"Processed {items} messages...",
                            )
                        )
                        if options.stream_batches:
                            yield MessagesEvent(messages=batch)
                        else:
                            pending.append(batch)
                        batch = []
                bytes_read = reader.bytes_read
        except (ijson.common.JSONError, OSError, UnicodeError) as exc:
            reason = f"{type(exc).__name__}: {exc}"
            log.warning("parse_failed", error=reason, items_processed=items)
            failure = _progress(on_progress, ProgressStage.ERROR, bytes_read, total_bytes, items, reason)
            yield ErrorEvent(reason=reason, progress=failure)
            return

        if batch:
            if options.stream_batches:
                yield MessagesEvent(messages=batch)
            else:
                pending.append(batch)

        yield MembersEvent(
            members=[ParsedMember(platform_id=pid, account_name=name) for pid, name in members.items()]
        )
        for chunk in pending:
            yield MessagesEvent(messages=chunk)
        pending.clear()

        yield ProgressEvent(
            progress=_progress(on_progress, ProgressStage.DONE, total_bytes, total_bytes, items, "Parse complete")
        )
        log.info("parse_finished", messages=items, members=len(members))
        yield DoneEvent(message_count=items, member_count=len(members))


__all__ = [
    "FormatFeature",
    "FormatPlugin",
    "Signatures",
    "StreamingParser",
    "UNKNOWN_CHAT_NAME",
    "extract_header_object",
    "name_from_path",
    "text_or_none",
]
