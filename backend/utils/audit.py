import logging

from config.constants import AUDIT_LOGS
from utils.clock import utc_now

logger = logging.getLogger(__name__)


async def log_audit(gateway, actor_id: str, actor_role: str, action: str, metadata: dict | None = None):
    """Appends one row to audit_logs. Failures propagate to the caller."""
    logger.info("AUDIT action=%s actor=%s", action, actor_id)
    await gateway.table(AUDIT_LOGS).insert({
        "actor_id": actor_id,
        "actor_role": actor_role,
        "action": action,
        "metadata": metadata or {},
        "created_at": utc_now(),
    })
