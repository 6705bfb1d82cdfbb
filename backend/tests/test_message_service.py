"""Tests for the message ledger."""

import pytest

from config.constants import MESSAGES
from models.message import conversation_id
from utils.message_service import MessageLedger


@pytest.fixture
def ledger_for(gateway, clock, session_for):
    def _ledger(actor=None) -> MessageLedger:
        return MessageLedger(gateway, session_for(actor), clock=clock)

    return _ledger


class TestSendMessage:
    async def test_requires_sign_in(self, ledger_for, seller):
        result = await ledger_for().send_message("Hello", seller.id)
        assert result.error == "NotAuthenticated"

    async def test_rejects_empty_and_self(self, ledger_for, gateway, buyer, seller):
        ledger = ledger_for(buyer)

        assert (await ledger.send_message("   ", seller.id)).error == "ValidationFailed"
        assert (await ledger.send_message("Hi me", buyer.id)).error == "ValidationFailed"
        assert gateway.rows(MESSAGES) == []

    async def test_timestamps_strictly_increase_within_conversation(self, ledger_for, buyer, seller):
        # frozen clock: every send sees the same instant
        buyer_ledger = ledger_for(buyer)
        seller_ledger = ledger_for(seller)

        await buyer_ledger.send_message("Hi", seller.id)
        await seller_ledger.send_message("Hello!", buyer.id)
        await buyer_ledger.send_message("Can you start today?", seller.id)

        messages = await buyer_ledger.get_messages(conversation_id(buyer.id, seller.id))
        stamps = [m.timestamp for m in messages]

        assert [m.content for m in messages] == ["Hi", "Hello!", "Can you start today?"]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 3


class TestConversations:
    async def test_grouped_with_unread_counts(self, ledger_for, clock, buyer, seller, seed_profile):
        other = await seed_profile(name="Jordan")
        seller_ledger = ledger_for(seller)

        await ledger_for(buyer).send_message("Question about the logo", seller.id, order_id="order-1")
        clock.advance(minutes=1)
        await ledger_for(buyer).send_message("Any update?", seller.id)
        clock.advance(minutes=1)
        await ledger_for(other).send_message("Hi there", seller.id)
        clock.advance(minutes=1)
        await seller_ledger.send_message("On it", buyer.id)

        conversations = await seller_ledger.get_conversations(seller.id)

        assert [c.id for c in conversations] == [
            conversation_id(buyer.id, seller.id),
            conversation_id(other.id, seller.id),
        ]
        with_buyer = conversations[0]
        assert with_buyer.last_message.content == "On it"
        assert with_buyer.unread_count == 2
        assert with_buyer.order_id == "order-1"
        assert await seller_ledger.unread_count(seller.id) == 3

    async def test_outsider_sees_no_messages(self, ledger_for, buyer, seller, seed_profile):
        outsider = await seed_profile()
        await ledger_for(buyer).send_message("Private", seller.id)

        messages = await ledger_for(outsider).get_messages(conversation_id(buyer.id, seller.id))

        assert messages == []

    async def test_failure_degrades_to_empty(self, ledger_for, gateway, buyer):
        gateway.fail(MESSAGES, "select")
        ledger = ledger_for(buyer)

        assert await ledger.get_conversations(buyer.id) == []
        assert await ledger.unread_count(buyer.id) == 0


class TestMarkAsRead:
    async def test_receiver_marks_read(self, ledger_for, buyer, seller):
        sent = await ledger_for(buyer).send_message("Hi", seller.id)
        seller_ledger = ledger_for(seller)

        assert (await ledger_for(buyer).mark_as_read(sent.id)).error == "Unauthorized"

        result = await seller_ledger.mark_as_read(sent.id)
        assert result.success
        assert await seller_ledger.unread_count(seller.id) == 0

    async def test_missing_message(self, ledger_for, seller):
        result = await ledger_for(seller).mark_as_read("nope")
        assert result.error == "NotFound"
