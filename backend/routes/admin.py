from fastapi import APIRouter, Depends

from database import get_gateway
from models.user import Role
from utils.guards import raise_for_result
from utils.security import require_role
from utils.session_service import SessionContext
from utils.settings_service import SettingsService


router = APIRouter(prefix="/admin", tags=["Admin"])


# =====================================================
# SETTINGS
# =====================================================

@router.get("/settings")
async def get_settings(
    session: SessionContext = Depends(require_role(Role.ADMIN)),
    gateway=Depends(get_gateway),
):
    settings = await SettingsService(gateway).get_settings()
    return settings.model_dump(mode="json")


@router.patch("/settings")
async def update_settings(
    data: dict,
    session: SessionContext = Depends(require_role(Role.ADMIN)),
    gateway=Depends(get_gateway),
):
    result = await SettingsService(gateway).update_settings(session.actor, data)
    return raise_for_result(result)


# =====================================================
# ANALYTICS
# =====================================================

@router.get("/analytics")
async def analytics(
    session: SessionContext = Depends(require_role(Role.ADMIN)),
    gateway=Depends(get_gateway),
):
    return (await SettingsService(gateway).get_analytics()).model_dump()
