"""
FastAPI Application Entry Point.

HTTP adapter over the settlement and printing core for the ARBI POS app.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from arbi_pos.app.core.config import Settings, settings
from arbi_pos.app.api.v1.router import router as api_v1_router
from arbi_pos.app.db.session import engine, Base, AsyncSessionLocal
from arbi_pos.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from arbi_pos.app.core.observability import ObservabilityMiddleware, configure_logging
from arbi_pos.app.printing.session import PrinterSession
from arbi_pos.app.printing.transport import RfcommTransport, parse_known_devices
from arbi_pos.app.services.sql_store import SqlStore

# Import models to ensure they are registered with Base
from arbi_pos.app.models.customer import CustomerModel  # noqa: F401
from arbi_pos.app.models.order import OrderModel, OrderItemModel  # noqa: F401
from arbi_pos.app.models.credit_settlement import CreditSettlement, SettlementAllocationModel  # noqa: F401


def build_printer_session(config: Settings) -> PrinterSession:
    transport = RfcommTransport(
        known_devices=parse_known_devices(config.printer_known_devices),
        channel=config.printer_rfcomm_channel,
        encoding=config.printer_encoding,
    )
    return PrinterSession(
        transport,
        connect_timeout=config.printer_connect_timeout_seconds,
        max_reconnect_attempts=config.printer_max_reconnect_attempts,
        paper_width=config.paper_width,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Builds the store and the printer session.
    3. Drops the printer link on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.store = SqlStore(AsyncSessionLocal)
    app.state.printer_session = build_printer_session(settings)
    yield
    await app.state.printer_session.disconnect()
    await engine.dispose()


configure_logging(settings.log_level)

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Credit settlement and receipt printing for ARBI POS",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
