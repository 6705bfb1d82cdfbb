import logging
from pydantic import BaseModel, ValidationError

from config.constants import ADMIN_SETTINGS, ORDERS, PROFILES, SERVICES
from models.order import OrderStatus
from models.results import OperationResult
from models.settings import AdminSettings, AdminSettingsUpdate
from models.service import ServiceStatus
from models.user import Role
from utils.audit import log_audit
from utils.clock import utc_now
from utils.errors import (
    MarketplaceError,
    NotAuthenticated,
    Unauthorized,
    ValidationFailed,
    from_validation_error,
)

logger = logging.getLogger(__name__)


class Analytics(BaseModel):
    total_users: int = 0
    total_sellers: int = 0
    total_orders: int = 0
    completed_orders: int = 0
    total_revenue: float = 0.0
    platform_earnings: float = 0.0
    active_services: int = 0


class SettingsService:
    """
    Process-wide admin settings record.

    Read by the order engine for the commission rate and by the catalog for
    featured categories. Only an authenticated admin may change it.
    """

    def __init__(self, gateway, clock=utc_now):
        self.gateway = gateway
        self.clock = clock

    async def _load_row(self) -> dict | None:
        rows = await self.gateway.table(ADMIN_SETTINGS).select()
        return rows[0] if rows else None

    async def get_settings(self) -> AdminSettings:
        # raises PersistenceFailure, callers sit behind an engine boundary
        row = await self._load_row()
        if not row:
            return AdminSettings()
        return AdminSettings(**{k: v for k, v in row.items() if k in AdminSettings.model_fields})

    async def commission_rate(self) -> float:
        settings = await self.get_settings()
        return settings.commission_fraction

    async def update_settings(self, actor, changes: dict) -> OperationResult:
        try:
            if actor is None:
                raise NotAuthenticated("Sign in to change settings")
            if actor.role != Role.ADMIN:
                raise Unauthorized("Admin access only")

            try:
                update = AdminSettingsUpdate(**changes)
            except ValidationError as e:
                raise from_validation_error(e)

            fields = update.model_dump(exclude_unset=True, mode="json")
            if not fields:
                raise ValidationFailed("Nothing to update")

            table = self.gateway.table(ADMIN_SETTINGS)
            row = await self._load_row()
            now = self.clock()

            if row:
                await table.update(row["id"], {**fields, "updated_at": now})
            else:
                merged = AdminSettings(**fields).model_dump(mode="json")
                await table.insert({**merged, "created_at": now, "updated_at": now})

            await log_audit(
                self.gateway,
                actor_id=actor.id,
                actor_role=actor.role.value,
                action="ADMIN_SETTINGS_UPDATED",
                metadata={"fields": sorted(fields)},
            )
        except MarketplaceError as e:
            return OperationResult.fail(e)

        return OperationResult.ok("Settings updated successfully")

    async def get_analytics(self) -> Analytics:
        try:
            profiles = await self.gateway.table(PROFILES).select()
            orders = await self.gateway.table(ORDERS).select()
            active_services = await self.gateway.table(SERVICES).select(
                {"status": ServiceStatus.ACTIVE.value}
            )
        except MarketplaceError:
            logger.error("ANALYTICS_FETCH_ERROR")
            return Analytics()

        live = [o for o in orders if o.get("status") != OrderStatus.CANCELLED.value]
        completed = [o for o in orders if o.get("status") == OrderStatus.COMPLETED.value]

        return Analytics(
            total_users=len(profiles),
            total_sellers=sum(1 for p in profiles if p.get("role") == Role.SELLER.value),
            total_orders=len(orders),
            completed_orders=len(completed),
            total_revenue=round(sum(o.get("amount", 0) for o in live), 2),
            platform_earnings=round(sum(o.get("commission_amount", 0) for o in completed), 2),
            active_services=len(active_services),
        )
