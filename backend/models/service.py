from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum

from config.constants import CATEGORIES


class ServiceStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    REJECTED = "rejected"


class Package(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


TIER_COLUMNS = {
    f"{column}_{package.value}"
    for column in ("price", "delivery", "revisions", "features")
    for package in Package
}


class PricingTier(BaseModel):
    price: float = Field(..., gt=0)
    delivery_days: int = Field(..., ge=1)
    revisions: int = Field(0, ge=0)
    features: List[str] = []


def _check_category(value):
    if value is not None and value not in CATEGORIES:
        raise ValueError(f"Unknown category: {value}")
    return value


class ServiceCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: str
    sub_category: Optional[str] = None
    tags: List[str] = []
    images: List[str] = []
    video_url: Optional[str] = None

    basic: PricingTier
    standard: Optional[PricingTier] = None
    premium: Optional[PricingTier] = None

    status: ServiceStatus = ServiceStatus.ACTIVE

    @field_validator("category")
    @classmethod
    def check_category(cls, value):
        return _check_category(value)

    @field_validator("status")
    @classmethod
    def check_initial_status(cls, value):
        if value not in (ServiceStatus.DRAFT, ServiceStatus.ACTIVE):
            raise ValueError("New services start as draft or active")
        return value


class ServiceUpdate(BaseModel):
    # rating / total_orders are not editable fields, extra keys are rejected
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    sub_category: Optional[str] = None
    tags: Optional[List[str]] = None
    images: Optional[List[str]] = None
    video_url: Optional[str] = None

    basic: Optional[PricingTier] = None
    standard: Optional[PricingTier] = None
    premium: Optional[PricingTier] = None

    status: Optional[ServiceStatus] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, value):
        return _check_category(value)


class Service(BaseModel):
    id: str
    seller_id: str
    title: str
    description: str
    category: str
    sub_category: Optional[str] = None
    tags: List[str] = []
    images: List[str] = []
    video_url: Optional[str] = None

    basic: PricingTier
    standard: Optional[PricingTier] = None
    premium: Optional[PricingTier] = None

    status: ServiceStatus = ServiceStatus.DRAFT

    # derived aggregates
    rating: float = 0.0
    total_orders: int = 0

    is_featured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def tier(self, package: Package) -> Optional[PricingTier]:
        return getattr(self, Package(package).value)

    @property
    def from_price(self) -> float:
        prices = [t.price for t in (self.basic, self.standard, self.premium) if t is not None]
        return min(prices) if prices else float("inf")

    @property
    def is_discoverable(self) -> bool:
        return self.status == ServiceStatus.ACTIVE

    @classmethod
    def from_row(cls, row: dict) -> "Service":
        data = {k: v for k, v in row.items() if k not in TIER_COLUMNS}
        for package in Package:
            data[package.value] = tier_from_row(row, package)
        data["tags"] = row.get("tags") or []
        data["images"] = row.get("images") or []
        return cls(**data)


# -----------------------------
# Row shape: tiers are flattened into
# price_<tier>, delivery_<tier>, revisions_<tier>, features_<tier>
# -----------------------------

def tier_from_row(row: dict, package: Package) -> Optional[PricingTier]:
    name = Package(package).value
    price = row.get(f"price_{name}")
    if price is None:
        return None
    return PricingTier(
        price=price,
        delivery_days=row.get(f"delivery_{name}") or 1,
        revisions=row.get(f"revisions_{name}") or 0,
        features=row.get(f"features_{name}") or [],
    )


def tier_to_row(tier: Optional[PricingTier], package: Package) -> dict:
    name = Package(package).value
    if tier is None:
        return {
            f"price_{name}": None,
            f"delivery_{name}": None,
            f"revisions_{name}": None,
            f"features_{name}": None,
        }
    return {
        f"price_{name}": tier.price,
        f"delivery_{name}": tier.delivery_days,
        f"revisions_{name}": tier.revisions,
        f"features_{name}": list(tier.features),
    }


def service_fields_to_row(fields: dict) -> dict:
    """
    Flattens a (partial) service payload into row columns.
    Tier keys present in `fields` are expanded, absent ones untouched.
    """
    row = {}
    for key, value in fields.items():
        if key in (p.value for p in Package):
            tier = PricingTier(**value) if isinstance(value, dict) else value
            row.update(tier_to_row(tier, Package(key)))
        elif isinstance(value, Enum):
            row[key] = value.value
        else:
            row[key] = value
    return row
