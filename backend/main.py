from dotenv import load_dotenv
load_dotenv()

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from config.env import ENV, CORS_ALLOWED_ORIGINS, LOG_LEVEL, validate_production_env
from database import get_db

from routes.auth import router as auth_router
from routes.services import router as services_router
from routes.orders import router as orders_router
from routes.messages import router as messages_router
from routes.reviews import router as reviews_router
from routes.admin import router as admin_router
from routes.public import router as public_router

from utils.errors import MarketplaceError
from utils.guards import ERROR_STATUS
from utils.indexes import ensure_indexes

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
logger.info("LEAFORA_API env=%s", ENV)

is_production = ENV == "production"

app = FastAPI(
    title="Leafora API",
    version="1.0.0",
    docs_url=None if is_production else "/docs",
    redoc_url=None if is_production else "/redoc",
    openapi_url=None if is_production else "/openapi.json",
)

# -----------------------------
# CORS
# -----------------------------

origins = [o.strip() for o in CORS_ALLOWED_ORIGINS if o.strip()] or [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# ERRORS
# -----------------------------

@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    # engines normally return results, this catches reads that propagate
    logger.error("UNHANDLED_MARKETPLACE_ERROR path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.code, 500),
        content={"detail": {"message": exc.message, "error": exc.code}},
    )

# -----------------------------
# ROUTES
# -----------------------------

for router in (
    auth_router,
    services_router,
    orders_router,
    messages_router,
    reviews_router,
    admin_router,
    public_router,
):
    app.include_router(router, prefix="/api")

# -----------------------------
# HEALTH
# -----------------------------

@app.get("/api/health")
async def health():
    return {"status": "ok", "env": ENV}


@app.get("/api/health/db")
async def health_db():
    try:
        await get_db().command("ping")
    except PyMongoError:
        logger.exception("MONGO_PING_ERROR")
        return JSONResponse(status_code=503, content={"status": "mongodb unreachable"})
    return {"status": "mongodb connected"}

# -----------------------------
# STARTUP
# -----------------------------

@app.on_event("startup")
async def startup():
    validate_production_env()
    await ensure_indexes(get_db())
