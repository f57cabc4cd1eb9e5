"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from support_oss.api.middleware import RequestIDMiddleware, MetricsMiddleware
from support_oss.api.v1 import analyze, packages
from support_oss.infrastructure.observability.logging import setup_logging
from support_oss.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Support-OSS API",
        description="Sustainability scores and donation allocation for open-source dependencies",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(analyze.router, prefix="/v1", tags=["analyze"])
    app.include_router(packages.router, prefix="/v1", tags=["packages"])

    return app


app = create_app()
