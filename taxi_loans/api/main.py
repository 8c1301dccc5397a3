"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from taxi_loans.api.middleware import RequestIDMiddleware, MetricsMiddleware
from taxi_loans.api.v1 import applications, borrowers, imports, loans, payments, quote
from taxi_loans.infrastructure.observability.logging import setup_logging
from taxi_loans.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Taxi Loans",
        description="Loan applications, funding and repayment tracking for taxi drivers",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(quote.router, prefix="/v1", tags=["quotes"])
    app.include_router(applications.router, prefix="/v1", tags=["applications"])
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(borrowers.router, prefix="/v1", tags=["borrowers"])
    app.include_router(imports.router, prefix="/v1", tags=["import"])

    return app


app = create_app()
