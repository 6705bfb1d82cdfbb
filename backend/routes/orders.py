from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import List, Optional

from database import get_gateway
from models.order import OrderStatus
from models.service import Package
from models.user import Mode, Role
from utils.guards import raise_for_result
from utils.message_service import MessageLedger
from utils.order_service import OrderService
from utils.order_timeline import get_order_timeline
from utils.security import require_session
from utils.session_service import SessionContext


router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)


class PlaceOrder(BaseModel):
    service_id: str
    package: Package
    requirements: Optional[str] = None


class StatusChange(BaseModel):
    status: OrderStatus


class Delivery(BaseModel):
    deliverables: List[str]


def get_order_service(gateway=Depends(get_gateway)) -> OrderService:
    return OrderService(gateway)


def order_payload(order) -> dict:
    data = order.model_dump(mode="json")
    data["seller_payout"] = order.seller_payout
    return data

# ======================================================
# CREATE ORDER (BUYER)
# ======================================================

@router.post("")
async def create_order(
    data: PlaceOrder,
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
):
    result = await orders.create_order({
        "service_id": data.service_id,
        "buyer_id": session.actor.id,
        "package": data.package.value,
        "requirements": data.requirements,
    })
    return raise_for_result(result)

# ======================================================
# MY ORDERS / STATS
# ======================================================

@router.get("/mine")
async def my_orders(
    role: Optional[Mode] = Query(None),
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
):
    # defaults to the lens the session is currently in
    lens = role or session.current_mode
    items = await orders.get_orders_by_user(session.actor.id, lens)
    return {
        "role": lens.value,
        "count": len(items),
        "orders": [order_payload(o) for o in items],
    }


@router.get("/stats")
async def dashboard_stats(
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
    gateway=Depends(get_gateway),
):
    stats = await orders.dashboard_stats(session.actor.id, session.current_mode)
    stats["unread_messages"] = await MessageLedger(gateway, session).unread_count(session.actor.id)
    return stats


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
):
    order = await orders.get_order_by_id(order_id)
    actor = session.actor
    if not order or (actor.role != Role.ADMIN and actor.id not in (order.buyer_id, order.seller_id)):
        raise HTTPException(404, "Order not found")
    return order_payload(order)


@router.get("/{order_id}/timeline")
async def order_timeline(
    order_id: str,
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
    gateway=Depends(get_gateway),
):
    order = await orders.get_order_by_id(order_id)
    actor = session.actor
    if not order or (actor.role != Role.ADMIN and actor.id not in (order.buyer_id, order.seller_id)):
        raise HTTPException(404, "Order not found")
    events = await get_order_timeline(gateway, order_id)
    return {"order_id": order_id, "events": events}

# ======================================================
# LIFECYCLE
# ======================================================

@router.post("/{order_id}/status")
async def update_status(
    order_id: str,
    data: StatusChange,
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
):
    result = await orders.update_order_status(order_id, data.status, actor=session.actor)
    return raise_for_result(result)


@router.post("/{order_id}/deliver")
async def deliver(
    order_id: str,
    data: Delivery,
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
):
    return raise_for_result(await orders.deliver_order(order_id, data.deliverables, session.actor))


@router.post("/{order_id}/revision")
async def request_revision(
    order_id: str,
    session: SessionContext = Depends(require_session),
    orders: OrderService = Depends(get_order_service),
):
    return raise_for_result(await orders.request_revision(order_id, session.actor))
