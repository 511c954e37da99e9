"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from mca_underwriter.api.middleware import RequestIDMiddleware, MetricsMiddleware
from mca_underwriter.api.v1 import analyze, decision, history, offer, stage
from mca_underwriter.infrastructure.observability.logging import setup_logging
from mca_underwriter.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="MCA Underwriter",
        description="Deal risk scoring, offer pricing and underwriting decisions",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(analyze.router, prefix="/v1", tags=["underwriting"])
    app.include_router(offer.router, prefix="/v1", tags=["underwriting"])
    app.include_router(decision.router, prefix="/v1", tags=["underwriting"])
    app.include_router(stage.router, prefix="/v1", tags=["deals"])
    app.include_router(history.router, prefix="/v1", tags=["deals"])

    return app


app = create_app()
