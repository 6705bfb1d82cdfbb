from fastapi import APIRouter, Depends, HTTPException, Query

from config.constants import SORT_NEWEST, SORT_OPTIONS
from database import get_gateway
from models.user import Role
from utils.catalog_service import ServiceCatalog
from utils.guards import raise_for_result
from utils.security import get_session, require_role
from utils.session_service import SessionContext
from utils.settings_service import SettingsService

router = APIRouter(
    prefix="/services",
    tags=["Services"]
)


async def get_catalog(gateway=Depends(get_gateway)) -> ServiceCatalog:
    catalog = ServiceCatalog(gateway)
    await catalog.load()
    return catalog


def service_card(service) -> dict:
    data = service.model_dump(mode="json")
    data["from_price"] = service.from_price
    return data

# ======================================================
# BROWSE
# ======================================================

@router.get("")
async def browse_services(
    q: str = Query(""),
    category: str = Query(""),
    min_price: float = Query(0, ge=0),
    max_price: float | None = Query(None, ge=0),
    sort: str = Query(SORT_NEWEST),
    catalog: ServiceCatalog = Depends(get_catalog),
):
    if sort not in SORT_OPTIONS:
        raise HTTPException(400, f"Invalid sort. Allowed: {', '.join(SORT_OPTIONS)}")

    catalog.set_search_query(q)
    catalog.set_selected_category(category)
    catalog.set_price_range((min_price, max_price if max_price is not None else float("inf")))
    catalog.set_sort_by(sort)

    return {
        "count": len(catalog.filtered_services),
        "categories": catalog.categories,
        "services": [service_card(s) for s in catalog.filtered_services],
    }


@router.get("/featured")
async def featured_services(
    catalog: ServiceCatalog = Depends(get_catalog),
    gateway=Depends(get_gateway),
):
    settings = await SettingsService(gateway).get_settings()
    featured = catalog.featured_services(settings)
    return {
        category: [service_card(s) for s in services]
        for category, services in featured.items()
    }


@router.get("/mine")
async def my_services(
    session: SessionContext = Depends(require_role(Role.SELLER, Role.ADMIN)),
    catalog: ServiceCatalog = Depends(get_catalog),
):
    services = catalog.services_by_seller(session.actor.id)
    return {
        "count": len(services),
        "services": [service_card(s) for s in services],
    }


@router.get("/{service_id}")
async def get_service(service_id: str, catalog: ServiceCatalog = Depends(get_catalog)):
    service = catalog.get_service_by_id(service_id)
    if not service or not service.is_discoverable:
        raise HTTPException(404, "Service not found")
    return service_card(service)

# ======================================================
# SELLER CRUD
# ======================================================

@router.post("")
async def create_service(
    data: dict,
    session: SessionContext = Depends(require_role(Role.SELLER, Role.ADMIN)),
    gateway=Depends(get_gateway),
):
    catalog = ServiceCatalog(gateway)
    return raise_for_result(await catalog.create_service(session.actor, data))


@router.patch("/{service_id}")
async def update_service(
    service_id: str,
    data: dict,
    session: SessionContext = Depends(get_session),
    gateway=Depends(get_gateway),
):
    catalog = ServiceCatalog(gateway)
    return raise_for_result(await catalog.update_service(service_id, data, actor=session.actor))


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    session: SessionContext = Depends(get_session),
    gateway=Depends(get_gateway),
):
    catalog = ServiceCatalog(gateway)
    return raise_for_result(await catalog.delete_service(service_id, actor=session.actor))
