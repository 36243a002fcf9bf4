"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from household_ledger.api.errors import domain_exception_handler
from household_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from household_ledger.api.v1 import attributions, payments
from household_ledger.domain.exceptions import DomainException
from household_ledger.infrastructure.observability.logging import setup_logging
from household_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Household Ledger",
        description="Household payments and income attribution service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(attributions.router, prefix="/v1", tags=["attributions"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])

    return app


app = create_app()
