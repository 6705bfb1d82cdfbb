from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from config.constants import SELLER_LEVEL_THRESHOLDS


class Role(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class Mode(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"


class SellerLevel(str, Enum):
    NEW_SELLER = "new_seller"
    LEVEL_ONE = "level_one"
    LEVEL_TWO = "level_two"
    TOP_RATED = "top_rated"


def seller_level_for(completed_orders: int) -> SellerLevel:
    for level, min_orders in SELLER_LEVEL_THRESHOLDS:
        if completed_orders >= min_orders:
            return SellerLevel(level)
    return SellerLevel.NEW_SELLER


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Profile(BaseModel):
    id: str
    name: str
    email: EmailStr
    role: Role = Role.BUYER

    profile_pic: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = []
    languages: List[str] = []

    # derived, written by the order recompute path only
    rating: float = Field(0.0, ge=0, le=5)
    total_reviews: int = Field(0, ge=0)
    seller_level: SellerLevel = SellerLevel.NEW_SELLER

    is_verified: bool = False
    is_active: bool = True
    current_mode: Mode = Mode.BUYER

    created_at: Optional[datetime] = None
    last_active: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Profile":
        data = {k: v for k, v in row.items() if k != "password_hash" and v is not None}
        return cls(**data)

    @property
    def can_switch_mode(self) -> bool:
        return self.role in (Role.SELLER, Role.ADMIN)


class SellerApplication(BaseModel):
    bio: str = ""
    skills: List[str] = []
    languages: List[str] = []
    profile_pic: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    profile_pic: Optional[str] = None
