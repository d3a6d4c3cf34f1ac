from datetime import datetime, timezone
from typing import Dict, Iterable, List

from common.config.conts import MESSAGE_UNREAD


def chatroom_code(uid_a: str, uid_b: str) -> str:
    """Both participants derive the same code regardless of who sends."""
    return "_".join(sorted([uid_a, uid_b]))


async def process_message(entity: dict) -> dict:
    entity["code"] = chatroom_code(entity["sender_uid"], entity["receiver_uid"])
    entity.setdefault("image", "")
    entity.setdefault("status", MESSAGE_UNREAD)
    if "timestamp" not in entity:
        entity["timestamp"] = datetime.now(timezone.utc).isoformat()
    return entity


def conversation_messages(messages: Iterable[dict], code: str) -> List[dict]:
    history = [m for m in messages if m.get("code") == code]
    return sorted(history, key=lambda m: str(m.get("timestamp") or ""))


def count_unread(messages: Iterable[dict], receiver_uid: str) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for message in messages:
        if message.get("status") == MESSAGE_UNREAD and message.get("receiver_uid") == receiver_uid:
            sender = message.get("sender_uid")
            counts[sender] = counts.get(sender, 0) + 1
    return counts
