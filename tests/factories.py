"""Writers for synthetic export files used across the test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

DEFAULT_SESSION: dict[str, Any] = {
    "wxid": "12345678@chatroom",
    "nickname": "Weekend Hikers",
    "remark": "",
    "displayName": "Weekend Hikers",
    "type": "群聊",
    "lastTimestamp": 1703091600,
    "messageCount": 0,
}


def echotrace_record(
    index: int,
    *,
    sender: str | None = None,
    display_name: str | None = None,
    type_label: str = "文本消息",
    content: str | None = None,
    create_time: int | None = None,
    senders: int = 7,
) -> dict[str, Any]:
    """A valid echotrace message; ``sender`` defaults to one of ``senders`` ids."""
    sender_id = sender if sender is not None else f"wxid_{index % senders}"
    return {
        "localId": index,
        "createTime": create_time if create_time is not None else 1703001600 + index,
        "formattedTime": "2023-12-20 00:00:00",
        "type": type_label,
        "localType": 1,
        "content": content if content is not None else f"message {index}",
        "isSend": 0,
        "senderUsername": sender_id,
        "senderDisplayName": display_name if display_name is not None else f"User {sender_id}",
        "source": "",
    }


def echotrace_text(
    records: list[dict[str, Any]],
    *,
    session: dict[str, Any] | None = None,
    raw_session: str | None = None,
) -> str:
    if raw_session is not None:
        session_text = raw_session
    else:
        session_text = json.dumps(session if session is not None else DEFAULT_SESSION, ensure_ascii=False)
    body = ",\n".join(json.dumps(record, ensure_ascii=False) for record in records)
    return f'{{"session": {session_text},\n"messages": [\n{body}\n]}}'


def write_echotrace(
    path: Path,
    records: list[dict[str, Any]],
    *,
    session: dict[str, Any] | None = None,
    raw_session: str | None = None,
) -> Path:
    path.write_text(echotrace_text(records, session=session, raw_session=raw_session), encoding="utf-8")
    return path


def chatlab_record(
    index: int,
    *,
    sender: str | None = None,
    account_name: str | None = None,
    group_nickname: str | None = None,
    type_code: Any = 0,
    content: str | None = None,
) -> dict[str, Any]:
    sender_id = sender if sender is not None else f"{10000 + index % 5}"
    return {
        "sender": sender_id,
        "accountName": account_name if account_name is not None else f"Account {sender_id}",
        "groupNickname": group_nickname,
        "timestamp": 1703001600 + index,
        "type": type_code,
        "content": content if content is not None else f"hello {index}",
    }


def write_chatlab(
    path: Path,
    records: list[dict[str, Any]],
    *,
    meta: dict[str, Any] | None = None,
) -> Path:
    payload = {
        "chatlab": {"version": "0.0.1", "exportedAt": 1703091600},
        "meta": meta if meta is not None else {"name": "Dev Group", "platform": "qq", "type": "group"},
        "members": [],
        "messages": records,
    }
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def event_types(events: list[Any]) -> list[str]:
    return [event.type for event in events]
