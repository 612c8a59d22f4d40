# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
Request Service
===============
Peer-to-peer delivery requests inside a closed university community: one member
posts a request, another accepts and delivers it, and a 4-digit code handed over in
person confirms completion.

Enforces a strict status state-machine:
    pending ─► in_progress ─► completed
    pending ─► cancelled

Port: 8005
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.controllers import member_controller, request_controller, system_controller
from app.core.config import settings
from app.core.database import build_engine, init_schema
from app.core.dependencies import init_services
from app.core.errors import DomainError
from app.core.logging import get_logger
from app.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


def create_app(engine: Optional[Engine] = None, **service_overrides) -> FastAPI:
    """Build the application. Tests pass their own engine and lifecycle overrides."""

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        db = engine or build_engine()
        if settings.AUTO_CREATE_SCHEMA:
            init_schema(db)
        init_services(application, db, **service_overrides)
        try:
            application.state.lifecycle_manager.seed_gauges()
        except SQLAlchemyError:
            logger.warning("Could not seed gauges, DB may not be ready yet")
        yield
        if engine is None:
            db.dispose()
            logger.info("Shutting down, connection pool disposed")

    application = FastAPI(
        title="Request Service",
        description="Delivery request lifecycle: create, accept, complete with a handoff code, cancel.",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )

    application.add_middleware(MetricsMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception",
                         extra={"request_id": getattr(request.state, "request_id", None)})
        return JSONResponse(status_code=500,
                            content={"error": "internal_server_error", "detail": str(exc)})

    application.include_router(system_controller.router)
    application.include_router(member_controller.router)
    application.include_router(request_controller.router)
    return application


app = create_app()


# ── Entrypoint ────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8005, log_level=settings.LOG_LEVEL.lower())
