import logging
from datetime import timedelta
from typing import Optional

from config.constants import MESSAGES
from models.message import Conversation, Message, conversation_id
from models.results import OperationResult
from utils.clock import utc_now
from utils.errors import (
    MarketplaceError,
    NotFound,
    Unauthorized,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


class MessageLedger:
    """
    Append-only message log. Conversations, last message and unread counts
    are derived from the rows on every read.
    """

    def __init__(self, gateway, session, clock=utc_now):
        self.gateway = gateway
        self.session = session
        self.clock = clock

    async def _last_message(self, cid: str) -> Optional[Message]:
        rows = await self.gateway.table(MESSAGES).select(
            {"conversation_id": cid},
            order_by=[("timestamp", -1)],
        )
        return Message.from_row(rows[0]) if rows else None

    async def send_message(
        self,
        content: str,
        receiver_id: str,
        order_id: str | None = None,
        attachments: list[str] | None = None,
    ) -> OperationResult:
        try:
            sender = self.session.require_actor()
            attachments = [a for a in (attachments or []) if a]

            if not (content or "").strip() and not attachments:
                raise ValidationFailed("Message cannot be empty")
            if not receiver_id:
                raise ValidationFailed("Receiver is required")
            if receiver_id == sender.id:
                raise ValidationFailed("You cannot message yourself")

            cid = conversation_id(sender.id, receiver_id)
            timestamp = self.clock()
            last = await self._last_message(cid)
            if last is not None and timestamp <= last.timestamp:
                # keep per-conversation order strictly increasing
                timestamp = last.timestamp + timedelta(microseconds=1)

            message_id = await self.gateway.table(MESSAGES).insert({
                "conversation_id": cid,
                "sender_id": sender.id,
                "receiver_id": receiver_id,
                "order_id": order_id,
                "content": content or "",
                "attachments": attachments,
                "timestamp": timestamp,
                "read": False,
            })
        except MarketplaceError as e:
            return OperationResult.fail(e)

        return OperationResult.ok("Message sent successfully", id=message_id)

    async def _messages_for(self, actor_id: str) -> list[Message]:
        table = self.gateway.table(MESSAGES)
        sent = await table.select({"sender_id": actor_id})
        received = await table.select({"receiver_id": actor_id})

        by_id = {r["id"]: r for r in sent + received}
        messages = [Message.from_row(r) for r in by_id.values()]
        return sorted(messages, key=lambda m: m.timestamp)

    async def get_conversations(self, actor_id: str) -> list[Conversation]:
        try:
            messages = await self._messages_for(actor_id)
        except MarketplaceError:
            logger.error("CONVERSATIONS_FETCH_ERROR user=%s", actor_id)
            return []

        grouped: dict[str, Conversation] = {}
        for message in messages:
            cid = conversation_id(message.sender_id, message.receiver_id)
            conversation = grouped.get(cid)
            if conversation is None:
                conversation = Conversation(
                    id=cid,
                    participants=sorted((message.sender_id, message.receiver_id)),
                )
                grouped[cid] = conversation

            conversation.last_message = message
            if message.order_id:
                conversation.order_id = message.order_id
            if message.receiver_id == actor_id and not message.read:
                conversation.unread_count += 1

        return sorted(
            grouped.values(),
            key=lambda c: c.last_message.timestamp,
            reverse=True,
        )

    async def get_messages(self, cid: str) -> list[Message]:
        actor = self.session.actor
        if actor is not None and actor.id not in cid.split(":"):
            return []
        try:
            rows = await self.gateway.table(MESSAGES).select(
                {"conversation_id": cid},
                order_by=[("timestamp", 1)],
            )
        except MarketplaceError:
            logger.error("MESSAGES_FETCH_ERROR conversation=%s", cid)
            return []
        return [Message.from_row(r) for r in rows]

    async def unread_count(self, actor_id: str) -> int:
        try:
            rows = await self.gateway.table(MESSAGES).select({
                "receiver_id": actor_id,
                "read": False,
            })
        except MarketplaceError:
            logger.error("UNREAD_FETCH_ERROR user=%s", actor_id)
            return 0
        return len(rows)

    async def mark_as_read(self, message_id: str) -> OperationResult:
        try:
            table = self.gateway.table(MESSAGES)
            row = await table.get(message_id)
            if not row:
                raise NotFound("Message not found")

            actor = self.session.actor
            if actor is not None and actor.id != row["receiver_id"]:
                raise Unauthorized("Only the receiver can mark a message as read")

            if not row.get("read"):
                await table.update(message_id, {"read": True})
        except MarketplaceError as e:
            return OperationResult.fail(e)

        return OperationResult.ok("Message marked as read", id=message_id)
