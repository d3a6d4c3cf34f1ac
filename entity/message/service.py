import logging
from typing import Any, Callable, Dict, List, Optional

from common.config.config import ENTITY_VERSION
from common.config.conts import MESSAGE_READ, MESSAGE_UNREAD, MESSAGES_COLLECTION
from common.exception.exceptions import ValidationError
from common.storage.blob_store import BlobStore, object_name
from entity.message.workflow import chatroom_code, conversation_messages, count_unread, process_message

logger = logging.getLogger(__name__)


class MessagingService:
    """Chat between staff and adopters, one chatroom per pair of uids."""

    def __init__(self, entity_service, token, blob_store: BlobStore, entity_version: str = ENTITY_VERSION):
        self._entity_service = entity_service
        self._token = token
        self._blob_store = blob_store
        self._entity_version = entity_version

    async def _all_messages(self) -> List[dict]:
        return await self._entity_service.get_items(
            token=self._token,
            entity_model=MESSAGES_COLLECTION,
            entity_version=self._entity_version,
        )

    async def send_message(self, sender_uid: str, receiver_uid: str, text: str = "",
                           attachment: Optional[dict] = None) -> str:
        if not sender_uid or not receiver_uid:
            raise ValidationError("Both sender and receiver are required")
        text = text or ""
        if not text.strip() and not attachment:
            raise ValidationError("Please type a message or attach an image")

        image_url = ""
        if attachment:
            path = object_name("messages", attachment.get("filename"))
            image_url = await self._blob_store.upload(
                path, attachment["content"], attachment.get("content_type") or "application/octet-stream"
            )

        technical_id = await self._entity_service.add_item(
            token=self._token,
            entity_model=MESSAGES_COLLECTION,
            entity_version=self._entity_version,
            entity={
                "sender_uid": sender_uid,
                "receiver_uid": receiver_uid,
                "text": text,
                "image": image_url,
                "status": MESSAGE_UNREAD,
            },
            workflow=process_message,
        )
        logger.info(f"Message {technical_id} sent from {sender_uid} to {receiver_uid}")
        return technical_id

    async def conversation(self, admin_uid: str, other_uid: str) -> List[dict]:
        return conversation_messages(await self._all_messages(), chatroom_code(admin_uid, other_uid))

    async def mark_conversation_read(self, admin_uid: str, other_uid: str) -> int:
        history = await self.conversation(admin_uid, other_uid)
        unread = [m for m in history if m.get("sender_uid") == other_uid and m.get("status") == MESSAGE_UNREAD]
        for message in unread:
            await self._entity_service.update_item(
                token=self._token,
                entity_model=MESSAGES_COLLECTION,
                entity_version=self._entity_version,
                technical_id=message["technical_id"],
                entity={"status": MESSAGE_READ},
            )
        return len(unread)

    async def unread_counts(self, admin_uid: str) -> Dict[str, int]:
        return count_unread(await self._all_messages(), admin_uid)

    def subscribe_unread_counts(self, admin_uid: str,
                                callback: Callable[[Dict[str, int]], Any]) -> Callable[[], None]:
        if not admin_uid:
            raise ValidationError("An admin uid is required to track unread messages")

        def on_snapshot(messages):
            return callback(count_unread(messages, admin_uid))

        return self._entity_service.subscribe(
            token=self._token,
            entity_model=MESSAGES_COLLECTION,
            entity_version=self._entity_version,
            callback=on_snapshot,
        )

    def subscribe_conversation(self, admin_uid: str, other_uid: str,
                               callback: Callable[[List[dict]], Any]) -> Callable[[], None]:
        if not admin_uid or not other_uid:
            raise ValidationError("Both participants are required to follow a conversation")
        code = chatroom_code(admin_uid, other_uid)

        def on_snapshot(messages):
            return callback(conversation_messages(messages, code))

        return self._entity_service.subscribe(
            token=self._token,
            entity_model=MESSAGES_COLLECTION,
            entity_version=self._entity_version,
            callback=on_snapshot,
        )
