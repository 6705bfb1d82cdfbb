"""
Service catalog: the authoritative list of services plus a derived,
filtered and sorted view.

Every filter setter triggers refresh(), which re-filters the complete set.
Observers registered with subscribe() are called after each refresh.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
from pydantic import ValidationError

from config.constants import (
    ALL_CATEGORIES,
    CATEGORIES,
    DEFAULT_PRICE_RANGE,
    ORDERS,
    SERVICES,
    SORT_NEWEST,
    SORT_POPULAR,
    SORT_PRICE_HIGH,
    SORT_PRICE_LOW,
    SORT_RATING,
)
from models.results import OperationResult
from models.service import (
    Service,
    ServiceCreate,
    ServiceStatus,
    ServiceUpdate,
    service_fields_to_row,
)
from models.user import Role
from utils.clock import utc_now
from utils.errors import (
    MarketplaceError,
    NotAuthenticated,
    NotFound,
    Unauthorized,
    ValidationFailed,
    from_validation_error,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# ==============================
# Pure filter / sort
# ==============================

def matches_criteria(
    service: Service,
    query: str = "",
    category: str = "",
    price_range: tuple[float, float] = DEFAULT_PRICE_RANGE,
) -> bool:
    if not service.is_discoverable:
        return False

    needle = (query or "").strip().lower()
    if needle:
        in_text = needle in service.title.lower() or needle in service.description.lower()
        in_tags = any(needle in tag.lower() for tag in service.tags)
        if not (in_text or in_tags):
            return False

    if category and category != ALL_CATEGORIES and service.category != category:
        return False

    low, high = price_range
    return low <= service.from_price <= high


def _created_key(service: Service):
    created = service.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


def sort_services(services: Iterable[Service], sort_by: str) -> list[Service]:
    # sorted() is stable, equal keys keep their incoming order
    services = list(services)
    if sort_by == SORT_PRICE_LOW:
        return sorted(services, key=lambda s: s.from_price)
    if sort_by == SORT_PRICE_HIGH:
        return sorted(services, key=lambda s: s.from_price, reverse=True)
    if sort_by == SORT_RATING:
        return sorted(services, key=lambda s: s.rating, reverse=True)
    if sort_by == SORT_POPULAR:
        return sorted(services, key=lambda s: s.total_orders, reverse=True)
    return sorted(services, key=_created_key, reverse=True)


def filter_services(
    services: Iterable[Service],
    query: str = "",
    category: str = "",
    price_range: tuple[float, float] = DEFAULT_PRICE_RANGE,
    sort_by: str = SORT_NEWEST,
) -> list[Service]:
    matched = [s for s in services if matches_criteria(s, query, category, price_range)]
    return sort_services(matched, sort_by)


# ==============================
# Catalog engine
# ==============================

class ServiceCatalog:
    def __init__(self, gateway, clock=utc_now):
        self.gateway = gateway
        self.clock = clock

        self.services: list[Service] = []
        self.filtered_services: list[Service] = []
        self.categories: list[str] = list(CATEGORIES)

        self.search_query = ""
        self.selected_category = ""
        self.price_range: tuple[float, float] = DEFAULT_PRICE_RANGE
        self.sort_by = SORT_NEWEST
        self.loading = False

        self._observers: list[Callable[["ServiceCatalog"], None]] = []

    # -----------------------------
    # Observers
    # -----------------------------

    def subscribe(self, observer: Callable[["ServiceCatalog"], None]) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def refresh(self) -> list[Service]:
        self.filtered_services = filter_services(
            self.services,
            self.search_query,
            self.selected_category,
            self.price_range,
            self.sort_by,
        )
        for observer in list(self._observers):
            observer(self)
        return self.filtered_services

    # -----------------------------
    # Filter inputs
    # -----------------------------

    def set_search_query(self, query: str) -> None:
        self.search_query = query or ""
        self.refresh()

    def set_selected_category(self, category: str) -> None:
        self.selected_category = category or ""
        self.refresh()

    def set_price_range(self, price_range: tuple[float, float]) -> None:
        low, high = price_range
        if low > high:
            low, high = high, low
        self.price_range = (float(low), float(high))
        self.refresh()

    def set_sort_by(self, sort_by: str) -> None:
        # unknown keys fall back to newest inside sort_services
        self.sort_by = sort_by or SORT_NEWEST
        self.refresh()

    # -----------------------------
    # Authoritative set
    # -----------------------------

    async def load(self) -> list[Service]:
        self.loading = True
        try:
            rows = await self.gateway.table(SERVICES).select(order_by=[("created_at", 1)])
            self.services = [Service.from_row(r) for r in rows]
        except MarketplaceError:
            logger.error("CATALOG_FETCH_ERROR")
            self.services = []
        except ValidationError:
            logger.exception("CATALOG_ROW_ERROR")
            self.services = []
        finally:
            self.loading = False

        self.refresh()
        return self.services

    def get_service_by_id(self, service_id: str) -> Optional[Service]:
        return next((s for s in self.services if s.id == service_id), None)

    def services_by_seller(self, seller_id: str) -> list[Service]:
        return [s for s in self.services if s.seller_id == seller_id]

    def featured_services(self, settings, limit: int = 6) -> dict[str, list[Service]]:
        featured = {}
        for category in settings.featured_categories:
            in_category = [
                s for s in self.services
                if s.is_discoverable and s.category == category
            ]
            in_category = sorted(in_category, key=lambda s: (s.is_featured, s.rating), reverse=True)
            featured[category] = in_category[:limit]
        return featured

    # -----------------------------
    # CRUD
    # -----------------------------

    def _check_owner(self, actor, row: dict) -> None:
        if actor is None:
            raise NotAuthenticated("You need to sign in first")
        if actor.role != Role.ADMIN and row.get("seller_id") != actor.id:
            raise Unauthorized("You can only manage your own services")

    def _check_moderation(self, actor, row: dict, fields: dict) -> None:
        # rejected is set and lifted by admins only
        if "status" not in fields:
            return
        if fields["status"] is None:
            raise ValidationFailed("Status cannot be empty")
        if actor.role == Role.ADMIN:
            return
        if row.get("status") == ServiceStatus.REJECTED.value or fields["status"] == ServiceStatus.REJECTED:
            raise Unauthorized("Only an admin can change a rejected service's status")

    async def create_service(self, seller, data) -> OperationResult:
        try:
            if seller is None:
                raise NotAuthenticated("You need to sign in first")
            if seller.role not in (Role.SELLER, Role.ADMIN):
                raise Unauthorized("Only sellers can create services")

            try:
                service = ServiceCreate.model_validate(data)
            except ValidationError as e:
                raise from_validation_error(e)

            now = self.clock()
            row = service_fields_to_row(dict(service))
            row.update({
                "seller_id": seller.id,
                "rating": 0.0,
                "total_orders": 0,
                "is_featured": False,
                "created_at": now,
                "updated_at": now,
            })
            service_id = await self.gateway.table(SERVICES).insert(row)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        logger.info("SERVICE_CREATED service=%s seller=%s", service_id, seller.id)
        await self.load()
        return OperationResult.ok("Service created successfully", id=service_id)

    async def update_service(self, service_id: str, updates, actor=None) -> OperationResult:
        try:
            try:
                update = ServiceUpdate.model_validate(updates or {})
            except ValidationError as e:
                raise from_validation_error(e)

            fields = {k: getattr(update, k) for k in update.model_fields_set}
            if not fields:
                raise ValidationFailed("Nothing to update")
            if "basic" in fields and fields["basic"] is None:
                raise ValidationFailed("The basic package is required")

            table = self.gateway.table(SERVICES)
            row = await table.get(service_id)
            if not row:
                raise NotFound("Service not found")
            self._check_owner(actor, row)
            self._check_moderation(actor, row, fields)

            changes = service_fields_to_row(fields)
            changes["updated_at"] = self.clock()
            await table.update(service_id, changes)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        await self.load()
        return OperationResult.ok("Service updated successfully", id=service_id)

    async def delete_service(self, service_id: str, actor=None) -> OperationResult:
        try:
            table = self.gateway.table(SERVICES)
            row = await table.get(service_id)
            if not row:
                raise NotFound("Service not found")
            self._check_owner(actor, row)

            if await self.gateway.table(ORDERS).find_one({"service_id": service_id}):
                raise ValidationFailed("Service has orders and cannot be deleted, pause it instead")

            await table.delete(service_id)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        logger.info("SERVICE_DELETED service=%s", service_id)
        await self.load()
        return OperationResult.ok("Service deleted successfully", id=service_id)
