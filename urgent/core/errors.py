# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Error taxonomy for the urgent lifecycle.

Each error carries its HTTP status; the application registers one handler that
renders ``{"error": message, **extra}``.
"""
from typing import Any, Dict


class UrgentError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class BadRequest(UrgentError):
    status_code = 400


class Unauthorized(UrgentError):
    status_code = 401


class NotFound(UrgentError):
    status_code = 404


class InternalError(UrgentError):
    status_code = 500
