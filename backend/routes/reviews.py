from fastapi import APIRouter, Depends

from database import get_gateway
from models.review import ReviewCreate
from utils.guards import raise_for_result
from utils.order_service import OrderService
from utils.security import require_session
from utils.session_service import SessionContext

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"]
)

# -------------------------------------------------
# CREATE REVIEW (BUYER OF A COMPLETED ORDER)
# -------------------------------------------------

@router.post("/{order_id}")
async def create_review(
    order_id: str,
    data: ReviewCreate,
    session: SessionContext = Depends(require_session),
    gateway=Depends(get_gateway),
):
    orders = OrderService(gateway)
    result = await orders.submit_review(order_id, session.actor, data.rating, data.comment)
    return raise_for_result(result)


# -------------------------------------------------
# PUBLIC: GET SERVICE REVIEWS
# -------------------------------------------------

@router.get("/service/{service_id}")
async def get_service_reviews(service_id: str, gateway=Depends(get_gateway)):
    reviews = await OrderService(gateway).get_service_reviews(service_id)
    return {
        "count": len(reviews),
        "reviews": [
            {
                "rating": r.rating,
                "comment": r.comment,
                "created_at": r.created_at,
            }
            for r in reviews
        ],
    }
