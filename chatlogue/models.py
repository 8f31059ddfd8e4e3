"""Canonical records and the parse event contract.

Every format plugin normalizes its source records into the same small set
of models:

- `ParsedMeta`: one per parse, describes the conversation
- `ParsedMember`: one per distinct sender
- `ParsedMessage`: one per accepted source record
- `Progress`: a transient status snapshot

A parse is exposed as an ordered sequence of `ParseEvent` values. The
``type`` field discriminates the variants so events can be serialized
and validated back with `EVENT_ADAPTER`.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from chatlogue.config import get_settings


class ChatPlatform(str, Enum):
    """Chat platforms whose exports can be imported."""

    QQ = "qq"
    WECHAT = "wechat"
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    DISCORD = "discord"
    LINE = "line"
    UNKNOWN = "unknown"

    @classmethod
    def normalize(cls, raw: object) -> ChatPlatform:
        """Map a platform string to a member, UNKNOWN when unrecognized."""
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


class ChatType(str, Enum):
    GROUP = "group"
    PRIVATE = "private"


class MessageType(str, Enum):
    """Canonical message kinds. Closed: unknown source kinds become OTHER."""

    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"
    VIDEO = "video"
    FILE = "file"
    EMOJI = "emoji"
    CONTACT = "contact"
    LINK = "link"
    LOCATION = "location"
    RED_PACKET = "red_packet"
    TRANSFER = "transfer"
    SHARE = "share"
    REPLY = "reply"
    FORWARD = "forward"
    SYSTEM = "system"
    OTHER = "other"


class ProgressStage(str, Enum):
    PARSING = "parsing"
    DONE = "done"
    ERROR = "error"


class ParsedMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    platform: ChatPlatform
    type: ChatType


class ParsedMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    platform_id: str
    account_name: str


class ParsedMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender_platform_id: str
    sender_account_name: str
    sender_group_nickname: Optional[str] = None
    timestamp: float
    """Seconds since the Unix epoch."""
    type: MessageType
    content: Optional[str] = None


class Progress(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: ProgressStage
    bytes_processed: int
    total_bytes: int
    items_processed: int
    message: str

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 100.0
        return min(100.0, self.bytes_processed * 100.0 / self.total_bytes)


ProgressCallback = Callable[[Progress], None]


class ParseOptions(BaseModel):
    """Per-invocation parse configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    file_path: Path
    batch_size: int = Field(default_factory=lambda: get_settings().batch_size, gt=0)
    on_progress: Optional[ProgressCallback] = None
    stream_batches: bool = False
    """Emit each batch as soon as it is flushed instead of after the decode ends."""

    @field_validator("file_path")
    @classmethod
    def _must_be_file(cls, value: Path) -> Path:
        if not value.is_file():
            raise ValueError(f"not an existing regular file: {value}")
        return value


# =============================================================================
# Events
# =============================================================================


class ProgressEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["progress"] = "progress"
    progress: Progress


class MetaEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["meta"] = "meta"
    meta: ParsedMeta


class MembersEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["members"] = "members"
    members: list[ParsedMember]


class MessagesEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["messages"] = "messages"
    messages: list[ParsedMessage]


class DoneEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["done"] = "done"
    message_count: int
    member_count: int


class ErrorEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    reason: str
    progress: Progress
    """Snapshot at the moment of failure, stage ERROR."""


ParseEvent = Annotated[
    Union[ProgressEvent, MetaEvent, MembersEvent, MessagesEvent, DoneEvent, ErrorEvent],
    Field(discriminator="type"),
]

EVENT_ADAPTER: TypeAdapter[ParseEvent] = TypeAdapter(ParseEvent)

TERMINAL_EVENT_TYPES = frozenset({"done", "error"})


__all__ = [
    "ChatPlatform",
    "ChatType",
    "DoneEvent",
    "EVENT_ADAPTER",
    "ErrorEvent",
    "MembersEvent",
    "MessageType",
    "MessagesEvent",
    "MetaEvent",
    "ParseEvent",
    "ParseOptions",
    "ParsedMember",
    "ParsedMessage",
    "ParsedMeta",
    "Progress",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressStage",
    "TERMINAL_EVENT_TYPES",
]
