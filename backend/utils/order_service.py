"""
Order lifecycle engine.

Orders snapshot everything money-related at creation: the seller, the tier
price, the commission computed from the rate in force, the delivery date and
the revision allowance. Later edits to the service or to the commission rate
never touch existing orders.

Cached aggregates (service rating / total_orders, seller rating /
total_reviews / seller_level) are written only by recompute_aggregates().
Earnings and spend are recomputed from the order rows on every call.
"""

import logging
from datetime import timedelta
from typing import Optional
from pydantic import ValidationError

from config.constants import ORDERS, PROFILES, REVIEWS, SERVICES
from models.order import (
    Order,
    OrderCreate,
    OrderStatus,
    can_transition,
)
from models.results import OperationResult
from models.review import Review, ReviewCreate
from models.service import Package, Service, ServiceStatus
from models.user import Mode, Role, seller_level_for
from utils.clock import utc_now
from utils.errors import (
    InvalidPackage,
    InvalidTransition,
    MarketplaceError,
    NotAuthenticated,
    NotFound,
    ServiceUnavailable,
    Unauthorized,
    ValidationFailed,
    from_validation_error,
)
from utils.order_timeline import record_order_event
from utils.settings_service import SettingsService

logger = logging.getLogger(__name__)

OPEN_STATUSES = {OrderStatus.PENDING, OrderStatus.IN_PROGRESS, OrderStatus.DELIVERED}


def _role_of(order: Order, actor) -> str:
    if actor is None:
        return "system"
    if actor.id == order.buyer_id:
        return "buyer"
    if actor.id == order.seller_id:
        return "seller"
    return actor.role.value


class OrderService:
    def __init__(self, gateway, settings: SettingsService | None = None, clock=utc_now):
        self.gateway = gateway
        self.settings = settings or SettingsService(gateway, clock=clock)
        self.clock = clock

    # ======================================================
    # CREATE
    # ======================================================

    async def create_order(self, data) -> OperationResult:
        try:
            try:
                order_in = OrderCreate.model_validate(data)
            except ValidationError as e:
                raise from_validation_error(e)

            if order_in.package not in {p.value for p in Package}:
                raise InvalidPackage(f"Unknown package '{order_in.package}'")
            package = Package(order_in.package)

            row = await self.gateway.table(SERVICES).get(order_in.service_id)
            if not row:
                raise NotFound("Service not found")
            service = Service.from_row(row)

            if service.status != ServiceStatus.ACTIVE:
                raise ServiceUnavailable("This service is not available for ordering")

            tier = service.tier(package)
            if tier is None:
                raise InvalidPackage(f"The {package.value} package is not offered by this service")

            if order_in.buyer_id == service.seller_id:
                raise ValidationFailed("You cannot order your own service")

            rate = await self.settings.commission_rate()
            now = self.clock()

            order = {
                "service_id": service.id,
                "buyer_id": order_in.buyer_id,
                "seller_id": service.seller_id,
                "package": package.value,
                "amount": tier.price,
                "commission_amount": round(tier.price * rate, 2),
                "status": OrderStatus.PENDING.value,
                "requirements": order_in.requirements,
                "deliverables": [],
                "delivery_date": now + timedelta(days=tier.delivery_days),
                "revision_count": 0,
                "revisions_delivered": 0,
                "max_revisions": tier.revisions,
                "created_at": now,
                "updated_at": now,
                "completed_at": None,
            }

            order_id = await self.gateway.table(ORDERS).insert(order)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        await self._timeline(
            order_id,
            "ORDER_CREATED",
            actor_role="buyer",
            actor_id=order_in.buyer_id,
            metadata={"package": package.value, "amount": tier.price},
        )

        return OperationResult.ok("Order placed successfully", id=order_id)

    # ======================================================
    # STATUS
    # ======================================================

    async def _load(self, order_id: str) -> Order:
        row = await self.gateway.table(ORDERS).get(order_id)
        if not row:
            raise NotFound("Order not found")
        return Order.from_row(row)

    def _check_party(self, order: Order, actor) -> None:
        if actor is None:
            return
        if actor.role == Role.ADMIN:
            return
        if actor.id not in (order.buyer_id, order.seller_id):
            raise Unauthorized("You are not a party to this order")

    def _check_actor_for(self, order: Order, target: OrderStatus, actor) -> None:
        """
        Who may move an order where. A missing actor is a trusted system
        caller and skips these rules.
        """
        if actor is None:
            return
        if target == OrderStatus.DELIVERED:
            raise ValidationFailed("Deliver the order with its deliverables instead")

        is_admin = actor.role == Role.ADMIN
        if target == OrderStatus.IN_PROGRESS and actor.id != order.seller_id and not is_admin:
            raise Unauthorized("Only the seller can start this order")
        if target == OrderStatus.COMPLETED and actor.id != order.buyer_id and not is_admin:
            raise Unauthorized("Only the buyer can accept this order")

    async def _transition(self, order: Order, new_status: OrderStatus, actor, extra: dict | None = None):
        if order.is_terminal:
            raise InvalidTransition(f"Order is already {order.status.value}")
        if not can_transition(order.status, new_status):
            raise InvalidTransition(
                f"Cannot move order from {order.status.value} to {new_status.value}"
            )

        now = self.clock()
        changes = {"status": new_status.value, "updated_at": now, **(extra or {})}
        if new_status == OrderStatus.COMPLETED:
            # the only writer of completed_at
            changes["completed_at"] = now

        await self.gateway.table(ORDERS).update(order.id, changes)

        await self._timeline(
            order.id,
            f"ORDER_{new_status.value.upper()}",
            actor_role=_role_of(order, actor),
            actor_id=actor.id if actor else None,
            metadata={"from": order.status.value},
        )

        if new_status == OrderStatus.COMPLETED:
            await self._safe_recompute(order.service_id, order.seller_id)

    async def update_order_status(self, order_id: str, new_status, actor=None) -> OperationResult:
        try:
            try:
                target = OrderStatus(new_status)
            except ValueError:
                raise ValidationFailed(f"Unknown order status '{new_status}'")

            order = await self._load(order_id)
            self._check_party(order, actor)
            self._check_actor_for(order, target, actor)
            await self._transition(order, target, actor)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        return OperationResult.ok("Order status updated successfully", id=order_id)

    async def deliver_order(self, order_id: str, deliverables: list[str], actor) -> OperationResult:
        try:
            if actor is None:
                raise NotAuthenticated("You need to sign in first")
            order = await self._load(order_id)
            if actor.id != order.seller_id:
                raise Unauthorized("Only the seller can deliver this order")

            files = [d for d in (deliverables or []) if d]
            if not files:
                raise ValidationFailed("Attach at least one deliverable")

            if order.status == OrderStatus.DELIVERED and order.has_open_revision:
                await self._deliver_revision(order, files, actor)
                return OperationResult.ok("Revision delivered", id=order_id)

            await self._transition(
                order,
                OrderStatus.DELIVERED,
                actor,
                extra={"deliverables": order.deliverables + files},
            )
        except MarketplaceError as e:
            return OperationResult.fail(e)

        return OperationResult.ok("Order delivered", id=order_id)

    async def _deliver_revision(self, order: Order, files: list[str], actor) -> None:
        # stays delivered, the revision is closed by new files
        await self.gateway.table(ORDERS).update(order.id, {
            "deliverables": order.deliverables + files,
            "revisions_delivered": order.revisions_delivered + 1,
            "updated_at": self.clock(),
        })
        await self._timeline(
            order.id,
            "REVISION_DELIVERED",
            actor_role="seller",
            actor_id=actor.id,
            metadata={"revision": order.revisions_delivered + 1, "files": len(files)},
        )

    async def request_revision(self, order_id: str, actor) -> OperationResult:
        """
        Buyer asks for another pass on a delivered order. The order stays
        delivered; only revision_count moves, bounded by max_revisions. One
        revision is open at a time, the seller closes it with deliver_order.
        """
        try:
            if actor is None:
                raise NotAuthenticated("You need to sign in first")
            order = await self._load(order_id)
            if actor.id != order.buyer_id:
                raise Unauthorized("Only the buyer can request a revision")
            if order.status != OrderStatus.DELIVERED:
                raise InvalidTransition("Revisions can only be requested on delivered orders")
            if order.revision_count >= order.max_revisions:
                raise ValidationFailed("No revisions left for this order")
            if order.has_open_revision:
                raise ValidationFailed("A revision is already in progress")

            await self.gateway.table(ORDERS).update(order.id, {
                "revision_count": order.revision_count + 1,
                "updated_at": self.clock(),
            })
        except MarketplaceError as e:
            return OperationResult.fail(e)

        await self._timeline(
            order_id,
            "REVISION_REQUESTED",
            actor_role="buyer",
            actor_id=actor.id,
            metadata={"revision": order.revision_count + 1, "max": order.max_revisions},
        )
        return OperationResult.ok("Revision requested", id=order_id)

    # ======================================================
    # REVIEWS
    # ======================================================

    async def submit_review(self, order_id: str, actor, rating: int, comment: str | None = None) -> OperationResult:
        try:
            if actor is None:
                raise NotAuthenticated("You need to sign in first")
            try:
                review_in = ReviewCreate(rating=rating, comment=comment)
            except ValidationError as e:
                raise from_validation_error(e)

            order = await self._load(order_id)
            if actor.id != order.buyer_id:
                raise Unauthorized("Only the buyer can review this order")
            if order.status != OrderStatus.COMPLETED:
                raise ValidationFailed("Order not eligible for review")

            reviews = self.gateway.table(REVIEWS)
            if await reviews.find_one({"order_id": order_id}):
                raise ValidationFailed("Review already submitted for this order")

            review_id = await reviews.insert({
                "order_id": order.id,
                "service_id": order.service_id,
                "buyer_id": order.buyer_id,
                "seller_id": order.seller_id,
                "rating": review_in.rating,
                "comment": review_in.comment,
                "created_at": self.clock(),
            })
        except MarketplaceError as e:
            return OperationResult.fail(e)

        await self._safe_recompute(order.service_id, order.seller_id)
        return OperationResult.ok("Review submitted successfully", id=review_id)

    async def get_service_reviews(self, service_id: str) -> list[Review]:
        try:
            rows = await self.gateway.table(REVIEWS).select(
                {"service_id": service_id},
                order_by=[("created_at", -1)],
            )
        except MarketplaceError:
            logger.error("REVIEWS_FETCH_ERROR service=%s", service_id)
            return []
        return [Review(**r) for r in rows]

    # ======================================================
    # AGGREGATES
    # ======================================================

    async def recompute_aggregates(self, service_id: str, seller_id: str) -> None:
        orders = self.gateway.table(ORDERS)
        reviews = self.gateway.table(REVIEWS)
        completed = OrderStatus.COMPLETED.value

        service_completed = await orders.select({"service_id": service_id, "status": completed})
        service_reviews = await reviews.select({"service_id": service_id})
        await self.gateway.table(SERVICES).update(service_id, {
            "total_orders": len(service_completed),
            "rating": _average(service_reviews),
        })

        seller_completed = await orders.select({"seller_id": seller_id, "status": completed})
        seller_reviews = await reviews.select({"seller_id": seller_id})
        await self.gateway.table(PROFILES).update(seller_id, {
            "rating": _average(seller_reviews),
            "total_reviews": len(seller_reviews),
            "seller_level": seller_level_for(len(seller_completed)).value,
        })

    async def _safe_recompute(self, service_id: str, seller_id: str) -> None:
        try:
            await self.recompute_aggregates(service_id, seller_id)
        except MarketplaceError:
            logger.exception("AGGREGATE_RECOMPUTE_ERROR service=%s seller=%s", service_id, seller_id)

    async def _timeline(self, order_id, event, **kwargs) -> None:
        try:
            await record_order_event(self.gateway, order_id=order_id, event=event, **kwargs)
        except MarketplaceError:
            logger.exception("TIMELINE_ERROR order=%s event=%s", order_id, event)

    # ======================================================
    # QUERIES
    # ======================================================

    async def get_order_by_id(self, order_id: str) -> Optional[Order]:
        try:
            return await self._load(order_id)
        except MarketplaceError:
            return None

    async def get_orders_by_user(self, user_id: str, role) -> list[Order]:
        role = getattr(role, "value", role)
        if role not in (Role.BUYER.value, Role.SELLER.value):
            return []

        key = "buyer_id" if role == Role.BUYER.value else "seller_id"
        try:
            rows = await self.gateway.table(ORDERS).select(
                {key: user_id},
                order_by=[("created_at", -1)],
            )
        except MarketplaceError:
            logger.error("ORDERS_FETCH_ERROR user=%s role=%s", user_id, role)
            return []
        return [Order.from_row(r) for r in rows]

    async def seller_earnings(self, seller_id: str) -> float:
        try:
            rows = await self.gateway.table(ORDERS).select({
                "seller_id": seller_id,
                "status": OrderStatus.COMPLETED.value,
            })
        except MarketplaceError:
            logger.error("EARNINGS_FETCH_ERROR seller=%s", seller_id)
            return 0.0
        # commission_amount is the rate frozen on each order
        return round(sum(Order.from_row(r).seller_payout for r in rows), 2)

    async def buyer_spent(self, buyer_id: str) -> float:
        try:
            rows = await self.gateway.table(ORDERS).select({
                "buyer_id": buyer_id,
                "status": {"$ne": OrderStatus.CANCELLED.value},
            })
        except MarketplaceError:
            logger.error("SPENT_FETCH_ERROR buyer=%s", buyer_id)
            return 0.0
        return round(sum(r["amount"] for r in rows), 2)

    async def dashboard_stats(self, user_id: str, mode) -> dict:
        mode = Mode(mode)
        orders = await self.get_orders_by_user(user_id, mode)
        open_orders = sum(1 for o in orders if o.status in OPEN_STATUSES)

        if mode == Mode.SELLER:
            try:
                services = await self.gateway.table(SERVICES).select({
                    "seller_id": user_id,
                    "status": ServiceStatus.ACTIVE.value,
                })
            except MarketplaceError:
                logger.error("SERVICES_FETCH_ERROR seller=%s", user_id)
                services = []
            return {
                "mode": mode.value,
                "active_services": len(services),
                "total_earnings": await self.seller_earnings(user_id),
                "orders_in_progress": open_orders,
            }

        return {
            "mode": mode.value,
            "orders_placed": len(orders),
            "total_spent": await self.buyer_spent(user_id),
            "active_orders": open_orders,
        }


def _average(reviews: list[dict]) -> float:
    if not reviews:
        return 0.0
    return round(sum(r["rating"] for r in reviews) / len(reviews), 1)
