"""
Aftermarket Agenda API Server - REST API for the schedule agenda.
"""
# ruff: noqa: S104
# S104: binds all interfaces; the deployment fronts it with a proxy

import logging
import os
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agenda.config import AgendaSettings, load_settings
from agenda.observability import CorrelationIdMiddleware, configure_logging
from agenda.service import AgendaService
from api.agenda_router import agenda_router, get_agenda_service
from api.response_models import HealthResponse

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8420


def _allowed_origins() -> list[str]:
    """CORS_ORIGINS as a comma-separated list; unset or '*' allows any origin."""
    raw = os.environ.get("CORS_ORIGINS", "*").strip()
    if raw in ("", "*"):
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(
    service: AgendaService | None = None,
    settings: AgendaSettings | None = None,
) -> FastAPI:
    """
    Build the API app.

    Args:
        service: Agenda service to serve; default wires the SQLite store
            lazily on first request
        settings: Resolved settings (default: load_settings())
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Aftermarket Agenda API",
        description="Scheduled and promised work orders, grouped by day",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(agenda_router)
    if service is not None:
        app.dependency_overrides[get_agenda_service] = lambda: service

    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="ok",
            timezone=settings.timezone,
            timestamp=datetime.now(UTC).isoformat(),
        )

    logger.info(f"Agenda API ready (timezone={settings.timezone})")
    return app


def main():
    """Serve the agenda API with uvicorn (PORT overrides the default port)."""
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.environ.get("PORT", DEFAULT_PORT)))


if __name__ == "__main__":
    main()
