"""
TonPay Backend - FastAPI Application

Issues TON payment instructions and confirms them against the ledger.

Run with:
    uvicorn tonpay.main:create_app --factory
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

from .api.orders import router as orders_router
from .config import Settings, load_settings
from .db.init_db import create_engine, create_session_factory, initialize_database
from .db.order_store import OrderStore
from .exceptions import OrderCreationError, StorageError, TonPayError
from .services.ledger_client import LedgerQueryClient, TonApiClient
from .services.payment_service import PaymentService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    ledger_client: Optional[LedgerQueryClient] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Explicit settings; loaded from the environment when omitted
        ledger_client: Ledger source; a TonApiClient for the configured
            network when omitted

    Raises:
        ConfigurationError: settings are missing or invalid
    """
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: create the database and wire the payment service.
        Shutdown: close the ledger HTTP session and the engine.
        """
        logger.info("Starting TonPay backend server...")
        logger.info(f"Network: {settings.ton_network}, recipient: {settings.recipient_address}")

        engine = create_engine(settings.resolved_database_path)
        try:
            await initialize_database(engine)
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            await engine.dispose()
            raise

        owned_client = None
        ledger = ledger_client
        if ledger is None:
            owned_client = TonApiClient(
                settings.api_endpoint,
                settings.tonapi_api_key,
                timeout=settings.tonapi_timeout_seconds,
            )
            ledger = owned_client

        store = OrderStore(create_session_factory(engine))
        app.state.settings = settings
        app.state.payment_service = PaymentService.from_settings(settings, store, ledger)
        logger.info("Server startup complete")

        yield

        logger.info("Shutting down TonPay backend server...")
        if owned_client is not None:
            await owned_client.close()
        await engine.dispose()

    app = FastAPI(
        title="TonPay API",
        description="TON payment orders with on-chain reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(OrderCreationError)
    async def order_creation_error_handler(request: Request, exc: OrderCreationError):
        """Invalid amounts are the client's fault; storage failures are not."""
        status_code = 400 if exc.details.get("reason") == "invalid_amount" else 503
        logger.warning(f"Order creation failed: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.warning(f"Storage error: {exc.message}")
        return JSONResponse(status_code=503, content=exc.to_dict())

    @app.exception_handler(TonPayError)
    async def tonpay_error_handler(request: Request, exc: TonPayError):
        logger.warning(
            f"TonPay error: {exc.error_code} - {exc.message}",
            extra={"details": exc.details}
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Input validation failures not caught by Pydantic."""
        logger.warning(f"Validation error: {str(exc)}")
        return JSONResponse(
            status_code=400,
            content={
                "error_code": "validation_error",
                "message": str(exc),
                "details": {}
            }
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Logs the full exception, returns a generic message."""
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error_code": "internal_error",
                "message": "An unexpected error occurred",
                "details": {}
            }
        )

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint for monitoring and load balancers."""
        return {
            "status": "healthy",
            "version": "0.1.0",
            "network": settings.ton_network,
            "recipient_address": settings.recipient_address,
        }

    app.include_router(orders_router, prefix="/api/orders", tags=["Orders"])

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(
        "tonpay.main:create_app",
        factory=True,
        host=_settings.host,
        port=_settings.port,
        log_level=_settings.log_level.lower()
    )
