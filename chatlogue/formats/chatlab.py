"""ChatLab interchange format.

File shape::

    {
      "chatlab": {"version": "0.0.1", "exportedAt": 1703001600},
      "meta": {"name": "...", "platform": "qq", "type": "group"},
      "members": [{"platformId": "...", "accountName": "...", "groupNickname": "..."}],
      "messages": [
        {"sender": "...", "accountName": "...", "groupNickname": "...",
         "timestamp": 1703001600, "type": 0, "content": "..."},
        ...
      ]
    }

Members are collected from the messages themselves, like every other
format, so the top-level ``members`` array is not read.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from chatlogue.models import ChatPlatform, ChatType, MessageType, ParsedMessage, ParsedMeta

from .base import FormatFeature, Signatures, StreamingParser, extract_header_object, name_from_path, text_or_none

FEATURE = FormatFeature(
    id="chatlab",
    name="ChatLab JSON",
    platform=ChatPlatform.UNKNOWN,
    priority=20,
    extensions=frozenset({".json"}),
    signatures=Signatures(
        head=(re.compile(r'"chatlab"\s*:'),),
        required_fields=("chatlab", "meta", "messages"),
    ),
)

_CODE_MAP: dict[int, MessageType] = {
    0: MessageType.TEXT,
    1: MessageType.IMAGE,
    2: MessageType.VOICE,
    3: MessageType.VIDEO,
    4: MessageType.FILE,
    5: MessageType.EMOJI,
    7: MessageType.LINK,
    8: MessageType.LOCATION,
    20: MessageType.RED_PACKET,
    21: MessageType.TRANSFER,
    24: MessageType.SHARE,
    25: MessageType.REPLY,
    26: MessageType.FORWARD,
    27: MessageType.CONTACT,
    80: MessageType.SYSTEM,
}


def convert_message_type(code: Any) -> MessageType:
    """Map a ChatLab numeric type code to a MessageType; never fails."""
    if isinstance(code, bool):
        return MessageType.OTHER
    if isinstance(code, float) and code.is_integer():
        code = int(code)
    if isinstance(code, int):
        return _CODE_MAP.get(code, MessageType.OTHER)
    if isinstance(code, str):
        try:
            return MessageType(code.strip().lower())
        except ValueError:
            return MessageType.OTHER
    return MessageType.OTHER


def _chat_type(raw: Any) -> ChatType:
    if isinstance(raw, str) and raw.strip().lower() == ChatType.PRIVATE.value:
        return ChatType.PRIVATE
    return ChatType.GROUP


class ChatLabParser(StreamingParser):
    feature = FEATURE
    records_prefix = "messages.item"

    def read_meta(self, head: str, path: Path) -> ParsedMeta:
        meta = extract_header_object(head, "meta") or {}
        return ParsedMeta(
            name=text_or_none(meta.get("name")) or name_from_path(path),
            platform=ChatPlatform.normalize(meta.get("platform")),
            type=_chat_type(meta.get("type")),
        )

    def normalize(self, record: dict[str, Any]) -> Optional[ParsedMessage]:
        sender = record.get("sender")
        timestamp = record.get("timestamp")
        if not sender or timestamp is None:
            return None
        platform_id = str(sender)
        return ParsedMessage(
            sender_platform_id=platform_id,
            sender_account_name=text_or_none(record.get("accountName")) or platform_id,
            sender_group_nickname=text_or_none(record.get("groupNickname")),
            timestamp=timestamp,
            type=convert_message_type(record.get("type")),
            content=text_or_none(record.get("content")),
        )


__all__ = ["ChatLabParser", "FEATURE", "convert_message_type"]
