# type: ignore
# pyright: reportGeneralTypeIssues=false
"""
Urgent Incident Service
=======================
Tracks urgent production-line incidents on factory machines: declaration,
optional Plan-B workaround, resolution. Every change is pushed to all
connected dashboards over a WebSocket.

Lifecycle per Unico:
    NOK ─► NOK + Plan B ─► OK
    NOK ─► OK              (direct)
    OK is terminal.

Port: 3000
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from urgent.controllers import system_controller, urgent_controller, ws_controller
from urgent.core.config import settings
from urgent.core.database import build_engine
from urgent.core.errors import UrgentError
from urgent.core.logging import get_logger
from urgent.middleware import MetricsMiddleware, RequestIDMiddleware
from urgent.repositories import UrgentRepository, UserRepository
from urgent.services.credential_verifier import CredentialVerifier
from urgent.services.notifier import ConnectionManager, Notifier
from urgent.services.urgent_service import UrgentService

logger = get_logger(settings.SERVICE_NAME)


def _wire(application: FastAPI, engine: AsyncEngine) -> None:
    connections = ConnectionManager(
        max_connections=settings.WS_MAX_CONNECTIONS,
        queue_size=settings.WS_QUEUE_SIZE,
        heartbeat_interval=settings.WS_HEARTBEAT_INTERVAL,
    )
    notifier = Notifier(connections, channel_size=settings.EVENT_CHANNEL_SIZE)
    application.state.engine = engine
    application.state.notifier = notifier
    application.state.urgent_service = UrgentService(
        UrgentRepository(engine),
        CredentialVerifier(UserRepository(engine)),
        notifier,
    )


@asynccontextmanager
async def lifespan(application: FastAPI):
    await application.state.notifier.start()
    logger.info("Urgent service ready")
    yield
    await application.state.notifier.stop()
    await application.state.engine.dispose()
    logger.info("Shutting down, connection pool disposed")


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def create_app(engine: Optional[AsyncEngine] = None) -> FastAPI:
    application = FastAPI(
        title="Urgent Incident Service",
        description="Declare, flag (Plan B) and resolve urgent machine incidents with live fan-out.",
        version="1.0.0",
        lifespan=lifespan,
    )
    _wire(application, engine or build_engine())

    application.add_middleware(MetricsMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(UrgentError)
    async def urgent_error_handler(request: Request, exc: UrgentError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request.", "detail": jsonable_encoder(exc.errors())},
        )

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception", extra={"request_id": _request_id(request)})
        return JSONResponse(status_code=500, content={"error": "internal_server_error"})

    application.include_router(system_controller.router)
    application.include_router(urgent_controller.router)
    application.include_router(ws_controller.router)
    return application


app = create_app()
