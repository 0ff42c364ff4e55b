"""FastAPI application factory"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cheque_clearance.api.dependencies import get_request_id
from cheque_clearance.api.errors import to_http_error
from cheque_clearance.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cheque_clearance.api.v1 import orders, obligations, payment_status
from cheque_clearance.infrastructure.observability.logging import setup_logging
from cheque_clearance.config import settings
from cheque_clearance.domain.exceptions import DomainException

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cheque Clearance Service",
        description="Cheque instrument clearance, due-date reconciliation and status publishing",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Domain errors a route did not translate itself
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        error = to_http_error(exc, get_request_id(request))
        return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(orders.router, prefix="/v1", tags=["orders"])
    app.include_router(obligations.router, prefix="/v1", tags=["obligations"])
    app.include_router(payment_status.router, prefix="/v1", tags=["payment-status"])

    return app


app = create_app()
