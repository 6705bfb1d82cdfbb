from fastapi import APIRouter, Depends

from database import get_gateway
from models.message import MessageCreate
from utils.guards import raise_for_result
from utils.message_service import MessageLedger
from utils.security import require_session
from utils.session_service import SessionContext

router = APIRouter(
    prefix="/messages",
    tags=["Messages"]
)


def get_ledger(
    session: SessionContext = Depends(require_session),
    gateway=Depends(get_gateway),
) -> MessageLedger:
    return MessageLedger(gateway, session)


@router.post("")
async def send_message(data: MessageCreate, ledger: MessageLedger = Depends(get_ledger)):
    result = await ledger.send_message(
        data.content,
        data.receiver_id,
        order_id=data.order_id,
        attachments=data.attachments,
    )
    return raise_for_result(result)


@router.get("/conversations")
async def conversations(ledger: MessageLedger = Depends(get_ledger)):
    items = await ledger.get_conversations(ledger.session.actor.id)
    return {
        "count": len(items),
        "conversations": [c.model_dump(mode="json") for c in items],
    }


@router.get("/conversations/{conversation_id}")
async def conversation_messages(conversation_id: str, ledger: MessageLedger = Depends(get_ledger)):
    messages = await ledger.get_messages(conversation_id)
    return {
        "conversation_id": conversation_id,
        "messages": [m.model_dump(mode="json") for m in messages],
    }


@router.post("/{message_id}/read")
async def mark_read(message_id: str, ledger: MessageLedger = Depends(get_ledger)):
    return raise_for_result(await ledger.mark_as_read(message_id))
