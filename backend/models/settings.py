from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional

from config.constants import CATEGORIES, DEFAULT_ADMIN_SETTINGS


class AdminSettings(BaseModel):
    site_title: str = DEFAULT_ADMIN_SETTINGS["site_title"]
    site_description: str = DEFAULT_ADMIN_SETTINGS["site_description"]
    tagline: str = DEFAULT_ADMIN_SETTINGS["tagline"]
    hero_title: str = DEFAULT_ADMIN_SETTINGS["hero_title"]
    hero_subtitle: str = DEFAULT_ADMIN_SETTINGS["hero_subtitle"]

    # percent of order amount
    commission_rate: float = Field(DEFAULT_ADMIN_SETTINGS["commission_rate"], ge=0, le=100)

    tos_content: Optional[str] = None
    privacy_policy_content: Optional[str] = None
    refund_policy_content: Optional[str] = None
    contact_email: EmailStr = DEFAULT_ADMIN_SETTINGS["contact_email"]
    featured_categories: List[str] = list(DEFAULT_ADMIN_SETTINGS["featured_categories"])

    @property
    def commission_fraction(self) -> float:
        return self.commission_rate / 100


class AdminSettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    site_title: Optional[str] = None
    site_description: Optional[str] = None
    tagline: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    commission_rate: Optional[float] = Field(None, ge=0, le=100)
    tos_content: Optional[str] = None
    privacy_policy_content: Optional[str] = None
    refund_policy_content: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    featured_categories: Optional[List[str]] = None

    @field_validator("featured_categories")
    @classmethod
    def check_featured_categories(cls, value):
        unknown = [c for c in value or [] if c not in CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown categories: {', '.join(unknown)}")
        return value
