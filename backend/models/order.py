from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from models.service import Package


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# disputed has no exits here, resolution happens through external arbitration
VALID_ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED, OrderStatus.DISPUTED},
    OrderStatus.IN_PROGRESS: {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.DISPUTED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.DISPUTED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.DISPUTED: set(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return OrderStatus(new) in VALID_ORDER_TRANSITIONS[OrderStatus(current)]


class OrderCreate(BaseModel):
    service_id: str
    buyer_id: str
    # checked against Package by the engine so unknown tiers surface as InvalidPackage
    package: str
    requirements: Optional[str] = None


class Order(BaseModel):
    id: str
    service_id: str
    buyer_id: str
    seller_id: str
    package: Package

    # frozen at creation
    amount: float
    commission_amount: float
    delivery_date: datetime
    max_revisions: int = Field(..., ge=0)

    revision_count: int = Field(0, ge=0)
    revisions_delivered: int = Field(0, ge=0)
    status: OrderStatus = OrderStatus.PENDING

    requirements: Optional[str] = None
    deliverables: List[str] = []

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Order":
        data = dict(row)
        data["deliverables"] = row.get("deliverables") or []
        return cls(**data)

    @property
    def seller_payout(self) -> float:
        return self.amount - self.commission_amount

    @property
    def has_open_revision(self) -> bool:
        return self.revision_count > self.revisions_delivered

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
