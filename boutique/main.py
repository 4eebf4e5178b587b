# boutique/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from boutique.core.config import get_settings
from boutique.core.errors import register_exception_handlers
from boutique.core.logging import configure_logging
from boutique.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from boutique.models import profile as _profile_models  # noqa: F401
from boutique.models import address as _address_models  # noqa: F401
from boutique.models import cart as _cart_models  # noqa: F401
from boutique.models import order as _order_models  # noqa: F401
from boutique.models import coupon as _coupon_models  # noqa: F401
from boutique.models import delivery_batch as _batch_models  # noqa: F401
from boutique.models import wheel as _wheel_models  # noqa: F401

# Routers
from boutique.routers.cart import router as cart_router
from boutique.routers.checkout import router as checkout_router
from boutique.routers.coupons import router as coupons_router
from boutique.routers.delivery_batches import router as delivery_batches_router
from boutique.routers.relay_points import router as relay_points_router
from boutique.routers.wheel import router as wheel_router

settings = get_settings()

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception:
        logger.exception("Startup: DB connection FAILED")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(checkout_router, prefix=settings.API_V1_STR)
app.include_router(coupons_router, prefix=settings.API_V1_STR)
app.include_router(delivery_batches_router, prefix=settings.API_V1_STR)
app.include_router(wheel_router, prefix=settings.API_V1_STR)
app.include_router(relay_points_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "boutique-checkout"}
