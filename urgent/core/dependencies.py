# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""FastAPI dependency injection wiring.

Components are built once in ``main.create_app`` and parked on ``app.state``;
these providers hand them to the controllers.
"""
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.requests import HTTPConnection

from urgent.services.notifier import Notifier
from urgent.services.urgent_service import UrgentService


def get_engine(conn: HTTPConnection) -> AsyncEngine:
    return conn.app.state.engine


def get_urgent_service(conn: HTTPConnection) -> UrgentService:
    return conn.app.state.urgent_service


def get_notifier(conn: HTTPConnection) -> Notifier:
    return conn.app.state.notifier
