import logging
from fastapi import APIRouter, Depends

from config.constants import CATEGORIES
from database import get_gateway
from models.settings import AdminSettings
from utils.errors import MarketplaceError
from utils.settings_service import SettingsService

router = APIRouter(
    prefix="/public",
    tags=["Public"]
)

logger = logging.getLogger(__name__)

# ============================================================
# SITE COPY
# ============================================================

@router.get("/settings")
async def site_settings(gateway=Depends(get_gateway)):
    try:
        settings = await SettingsService(gateway).get_settings()
    except MarketplaceError:
        logger.error("SETTINGS_FETCH_ERROR")
        settings = AdminSettings()

    data = settings.model_dump(mode="json")
    # commission stays admin-only
    data.pop("commission_rate", None)
    return data


@router.get("/categories")
async def get_categories():
    return CATEGORIES
