import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from warehouse.api import auth, catalog, dashboard, inventory, stock_in, stock_out
from warehouse.config import settings
from warehouse.database import SessionLocal, init_db
from warehouse.errors import (
    DuplicateUsername,
    InsufficientStock,
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from warehouse.services.record_store import Stores
from warehouse.services.seed_service import initialize_data
from warehouse.storage import Storage
from warehouse.sync.events import EventBus
from warehouse.sync.loop import InventorySync
from warehouse.sync.views import DashboardView, InventoryView

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(session_factory=None, bind=None, start_sync: bool = True) -> FastAPI:
    """Build the API. Tests pass their own session factory and engine."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(bind=bind)
        storage = Storage(session_factory or SessionLocal)
        stores = Stores(storage, EventBus())
        initialize_data(stores)

        inventory_view = InventoryView()
        dashboard_view = DashboardView()
        sync = InventorySync(stores, [inventory_view, dashboard_view])
        app.state.stores = stores
        app.state.sync = sync
        app.state.inventory_view = inventory_view
        app.state.dashboard_view = dashboard_view

        if start_sync:
            await sync.start()
        else:
            sync.attach()
        logger.info("Warehouse started (origin %s)", storage.origin)
        yield
        if start_sync:
            await sync.stop()
        else:
            sync.detach()

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Materials catalog, stock-in/stock-out orders, inventory ledger and reporting",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "fields": exc.fields})

    @app.exception_handler(DuplicateUsername)
    async def duplicate_username_handler(request: Request, exc: DuplicateUsername):
        return JSONResponse(status_code=409, content={"detail": str(exc), "fields": exc.fields})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InsufficientStock)
    async def insufficient_stock_handler(request: Request, exc: InsufficientStock):
        return JSONResponse(
            status_code=400,
            content={
                "detail": str(exc),
                "material_id": exc.material_id,
                "current": exc.current,
                "delta": exc.delta,
            },
        )

    @app.exception_handler(PermissionDenied)
    async def permission_denied_handler(request: Request, exc: PermissionDenied):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error("Persistence failure on %s: %s", exc.collection, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Return JSON for unhandled exceptions so the frontend can parse the error."""
        logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(catalog.router, prefix="/api/v1")
    app.include_router(inventory.router, prefix="/api/v1")
    app.include_router(stock_in.router, prefix="/api/v1")
    app.include_router(stock_out.router, prefix="/api/v1")
    app.include_router(dashboard.router, prefix="/api/v1")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


configure_logging()
app = create_app()
