from config.constants import ORDER_TIMELINE
from utils.clock import utc_now


async def record_order_event(
    gateway,
    *,
    order_id: str,
    event: str,
    actor_role: str,
    actor_id: str | None = None,
    metadata: dict | None = None,
):
    """
    Single source of truth for order timeline events.
    """

    row = {
        "order_id": order_id,
        "event": event,
        "actor_role": actor_role,
        "actor_id": actor_id,
        "metadata": metadata or {},
        "created_at": utc_now(),
    }

    await gateway.table(ORDER_TIMELINE).insert(row)


async def get_order_timeline(gateway, order_id: str) -> list[dict]:
    return await gateway.table(ORDER_TIMELINE).select(
        {"order_id": order_id},
        order_by=[("created_at", 1)],
    )
