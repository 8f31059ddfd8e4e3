"""WeChat exports written by the ycccccccy/echotrace exporter.

File shape::

    {
      "session": {"wxid": "...@chatroom", "nickname": "...", "remark": "...",
                  "displayName": "...", "type": "群聊" | "私聊", ...},
      "messages": [
        {"localId": 1, "createTime": 1703001600, "type": "文本消息",
         "localType": 1, "content": "...", "isSend": 0,
         "senderUsername": "wxid_x", "senderDisplayName": "...", ...},
        ...
      ]
    }

``localType`` is unreliable in these exports and is ignored; the message
kind comes from the Chinese ``type`` label.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from chatlogue.models import ChatPlatform, ChatType, MessageType, ParsedMessage, ParsedMeta

from .base import FormatFeature, Signatures, StreamingParser, extract_header_object, name_from_path, text_or_none
from .preprocess import ControlCharacterRepair

GROUP_ID_SUFFIX = "@chatroom"

FEATURE = FormatFeature(
    id="ycccccccy-echotrace",
    name="ycccccccy/echotrace WeChat export",
    platform=ChatPlatform.WECHAT,
    priority=15,
    extensions=frozenset({".json"}),
    signatures=Signatures(
        head=(
            re.compile(r'"session"\s*:'),
            re.compile(r'"senderUsername"\s*:'),
            re.compile(r'"senderDisplayName"\s*:'),
        ),
        required_fields=("session", "messages"),
    ),
)

_TYPE_MAP: dict[str, MessageType] = {
    "文本消息": MessageType.TEXT,
    "图片消息": MessageType.IMAGE,
    "语音消息": MessageType.VOICE,
    "视频消息": MessageType.VIDEO,
    "文件消息": MessageType.FILE,
    "动画表情": MessageType.EMOJI,
    "名片消息": MessageType.CONTACT,
    "卡片式链接": MessageType.LINK,
    "图文消息": MessageType.LINK,
    "位置消息": MessageType.LOCATION,
    "红包卡片": MessageType.RED_PACKET,
    "转账卡片": MessageType.TRANSFER,
    "小程序分享": MessageType.SHARE,
    "视频号直播卡片": MessageType.SHARE,
    "引用消息": MessageType.REPLY,
    "聊天记录合并转发": MessageType.FORWARD,
    "系统消息": MessageType.SYSTEM,
}


def convert_message_type(type_str: Any) -> MessageType:
    """Map an echotrace type label to a MessageType; never fails.

    Unknown labels (including the exporter's own ``未知类型(xxxxx)``) and
    non-string values become OTHER.
    """
    if not isinstance(type_str, str):
        return MessageType.OTHER
    return _TYPE_MAP.get(type_str, MessageType.OTHER)


def chat_type_from_session(session: Optional[dict[str, Any]]) -> ChatType:
    if not session:
        return ChatType.GROUP
    declared = session.get("type")
    if declared == "私聊":
        return ChatType.PRIVATE
    if declared == "群聊":
        return ChatType.GROUP
    wxid = session.get("wxid")
    if isinstance(wxid, str) and wxid and not wxid.endswith(GROUP_ID_SUFFIX):
        return ChatType.PRIVATE
    return ChatType.GROUP


class EchotraceParser(StreamingParser):
    feature = FEATURE
    preprocessor = ControlCharacterRepair()
    records_prefix = "messages.item"

    def read_meta(self, head: str, path: Path) -> ParsedMeta:
        session = extract_header_object(head, "session")
        name = None
        if session:
            name = text_or_none(session.get("displayName")) or text_or_none(session.get("nickname"))
        return ParsedMeta(
            name=name or name_from_path(path),
            platform=ChatPlatform.WECHAT,
            type=chat_type_from_session(session),
        )

    def normalize(self, record: dict[str, Any]) -> Optional[ParsedMessage]:
        sender = record.get("senderUsername")
        create_time = record.get("createTime")
        if not sender or create_time is None:
            return None
        platform_id = str(sender)
        return ParsedMessage(
            sender_platform_id=platform_id,
            sender_account_name=text_or_none(record.get("senderDisplayName")) or platform_id,
            # echotrace has no separate group nickname
            sender_group_nickname=None,
            timestamp=create_time,
            type=convert_message_type(record.get("type")),
            content=text_or_none(record.get("content")),
        )


__all__ = [
    "EchotraceParser",
    "FEATURE",
    "chat_type_from_session",
    "convert_message_type",
]
