from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from rental_api.api.errors import register_exception_handlers
from rental_api.api.routes.admin_lookups import router as admin_lookups_router
from rental_api.api.routes.admin_rentals import router as admin_rentals_router
from rental_api.api.routes.admin_variants import router as admin_variants_router
from rental_api.api.routes.store_rentals import router as store_rentals_router
from rental_api.core.logging import configure_logging, request_context
from rental_api.core.settings import get_app_settings
from rental_api.db.run_migrations import main as run_alembic
from rental_api.db.seed import seed_all
from rental_api.schemas.common import MessageResponse

settings = get_app_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Admin Rentals", "description": "Rentals, their variants, options and metadata."},
    {"name": "Admin Variants", "description": "Variants across rentals."},
    {"name": "Admin Lookups", "description": "Rental types and tags."},
    {"name": "Store Rentals", "description": "Published, priced rentals and search."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# Browsers reject a wildcard origin combined with credentials
allow_credentials = settings.CORS_ALLOW_CREDENTIALS and settings.CORS_ORIGINS != ["*"]
if settings.CORS_ALLOW_CREDENTIALS and not allow_credentials:
    logger.warning("CORS credentials disabled because CORS_ORIGINS is '*'")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind the correlation id and requested sales channel for logging, and echo
    the correlation id back as 'X-Correlation-ID'.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    request.state.correlation_id = corr
    with request_context(corr, request.headers.get("X-Sales-Channel-ID")):
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = corr
    return response


@app.on_event("startup")
async def on_startup() -> None:
    """
    Apply migrations, then seed reference data when AUTO_SEED is set.

    Alembic's env.py drives its own event loop, so the upgrade runs in a worker thread.
    A failed migration is logged and the app keeps serving so readiness probes can report it.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
        except Exception:
            logger.exception("Startup migration failed")
            return
        logger.info("Rental catalog schema is at head")

    if settings.AUTO_SEED:
        await seed_all()
        logger.info("Reference data seeded")


# PUBLIC_INTERFACE
@app.get("/health", response_model=MessageResponse, summary="Health Check", tags=["Health"])
def health_check() -> MessageResponse:
    """Liveness probe."""
    return MessageResponse(message="Healthy")


admin = APIRouter(prefix="/admin")
admin.include_router(admin_rentals_router)
admin.include_router(admin_variants_router)
admin.include_router(admin_lookups_router)

store = APIRouter(prefix="/store")
store.include_router(store_rentals_router)

app.include_router(admin)
app.include_router(store)
