import logging
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

from config.constants import (
    AUDIT_LOGS,
    MESSAGES,
    ORDER_TIMELINE,
    ORDERS,
    PROFILES,
    REVIEWS,
    SERVICES,
)

logger = logging.getLogger(__name__)

# IndexOptionsConflict / IndexKeySpecsConflict
_CONFLICT_CODES = {85, 86}

# (table, keys, options)
INDEXES = [
    (PROFILES, [("email", ASCENDING)], {"name": "profiles_email_unique_idx", "unique": True}),

    (SERVICES, [("status", ASCENDING), ("created_at", DESCENDING)], {"name": "services_status_created_idx"}),
    (SERVICES, [("seller_id", ASCENDING), ("created_at", DESCENDING)], {"name": "services_seller_created_idx"}),

    (ORDERS, [("buyer_id", ASCENDING), ("created_at", DESCENDING)], {"name": "orders_buyer_created_idx"}),
    (ORDERS, [("seller_id", ASCENDING), ("status", ASCENDING)], {"name": "orders_seller_status_idx"}),
    (ORDERS, [("service_id", ASCENDING), ("status", ASCENDING)], {"name": "orders_service_status_idx"}),

    (MESSAGES, [("conversation_id", ASCENDING), ("timestamp", ASCENDING)], {"name": "messages_conversation_ts_idx"}),
    (MESSAGES, [("receiver_id", ASCENDING), ("read", ASCENDING)], {"name": "messages_receiver_read_idx"}),

    # one review per order
    (REVIEWS, [("order_id", ASCENDING)], {"name": "reviews_order_unique_idx", "unique": True}),
    (REVIEWS, [("service_id", ASCENDING), ("created_at", DESCENDING)], {"name": "reviews_service_created_idx"}),

    (ORDER_TIMELINE, [("order_id", ASCENDING), ("created_at", ASCENDING)], {"name": "order_timeline_order_idx"}),
    (AUDIT_LOGS, [("created_at", DESCENDING)], {"name": "audit_logs_created_idx"}),
]


async def _replace_conflicting(collection, keys, name):
    """Drops indexes on the same key pattern that were created under another name or options."""
    async for index in collection.list_indexes():
        existing = list(index.get("key", {}).items())
        if existing == list(keys) and index.get("name") != name:
            logger.warning("INDEX_REPLACED table=%s index=%s", collection.name, index.get("name"))
            await collection.drop_index(index["name"])


async def create_index(collection, keys, **options):
    try:
        await collection.create_index(keys, **options)
    except OperationFailure as e:
        if getattr(e, "code", None) not in _CONFLICT_CODES:
            raise
        await _replace_conflicting(collection, keys, options.get("name"))
        await collection.create_index(keys, **options)


async def ensure_indexes(db):
    for table, keys, options in INDEXES:
        await create_index(db[table], keys, **options)
