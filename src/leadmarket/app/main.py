"""FastAPI application entry point for the LeadMarket API."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leadmarket.app.config import get_settings
from leadmarket.domain.schemas import HealthResponse
from leadmarket.infra.database import async_session, init_db
from leadmarket.services.listing_expiry import expire_listings

logger = logging.getLogger(__name__)


async def listing_expiry_loop(interval_minutes: int):
    """Retire expired listings every ``interval_minutes``."""
    while True:
        try:
            async with async_session() as db:
                expired_count = await expire_listings(db)
                if expired_count:
                    logger.info("Listing expiry: expired %d listings", expired_count)
        except Exception as e:
            logger.error("Listing expiry error: %s", e)
        await asyncio.sleep(interval_minutes * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database, start the expiry sweep if enabled."""
    await init_db()

    task = None
    interval = get_settings().listing_expiry_sweep_minutes
    if interval > 0:
        task = asyncio.create_task(listing_expiry_loop(interval))
    yield
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Listing expiry sweep stopped")


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="LeadMarket API",
    lifespan=lifespan,
    debug=settings.debug,
)

# Session cookies need credentials, so a wildcard origin disables them
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report body and query validation failures as 400 with field details."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"detail": "Validation error", "errors": errors}),
    )


# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from leadmarket.app.routes.auth import router as auth_router
from leadmarket.app.routes.properties import router as properties_router
from leadmarket.app.routes.leads import router as leads_router
from leadmarket.app.routes.billing import router as billing_router
from leadmarket.app.routes.webhook import router as webhook_router
from leadmarket.app.routes.payments import router as payments_router
from leadmarket.app.routes.notifications import router as notifications_router
from leadmarket.app.routes.admin import router as admin_router

app.include_router(auth_router)
app.include_router(properties_router)
app.include_router(leads_router)
app.include_router(billing_router)
app.include_router(webhook_router)
app.include_router(payments_router)
app.include_router(notifications_router)
app.include_router(admin_router)


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Return service health status."""
    return HealthResponse(status="ok", service="leadmarket")


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "leadmarket.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
