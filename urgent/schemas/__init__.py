# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Pydantic request/response schemas.

Request bodies are deliberately loose: every field is optional and badges may
arrive as JSON numbers. Required-field checks live in the service so they
produce the lifecycle's own 400 messages.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _as_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ── Requests ──────────────────────────────────────────────────────────────

class UrgentItem(_CamelModel):
    unico: Optional[str] = None
    machine: Optional[str] = None
    plan_b: Optional[bool] = None
    mc_pb: Optional[str] = None
    type: Optional[str] = None
    time_remaining: Optional[str] = None

    @field_validator("unico", "machine", "mc_pb", "type", "time_remaining", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)


class UrgentDeclare(UrgentItem):
    declarer_matricule: Optional[str] = None
    password: Optional[str] = None
    urgents: Optional[List[UrgentItem]] = None

    @field_validator("declarer_matricule", "password", mode="before")
    @classmethod
    def coerce_credentials(cls, v: Any) -> Any:
        return _as_text(v)


class PlanBRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unico: Optional[str] = None
    mc_pb: Optional[str] = Field(None, alias="McPb")

    @field_validator("unico", "mc_pb", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)


class ResolveRequest(_CamelModel):
    unico: Optional[str] = None
    unicos: Optional[List[Any]] = None
    corrector_matricule: Optional[str] = None
    password: Optional[str] = None

    @field_validator("unico", "corrector_matricule", "password", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)


# ── Responses ─────────────────────────────────────────────────────────────

class IdentityOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    matricule: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="full name")
    role: Optional[str] = None


class UrgentOut(_CamelModel):
    id: int
    unico: Optional[str]
    declared_at: Optional[datetime]
    corrected_at: Optional[datetime]
    status: str
    machine: Optional[str]
    plan_b: bool = False
    mc_pb: Optional[str] = None
    type: Optional[str] = None
    time_remaining: Optional[str] = None
    declared_by: IdentityOut
    corrected_by: Optional[IdentityOut] = None


class UrgentList(BaseModel):
    count: int
    results: List[UrgentOut]


class MachineList(BaseModel):
    count: int
    results: List[str]


class SkippedOut(BaseModel):
    unico: str
    reason: str


class ResolveOut(BaseModel):
    count: int
    results: List[UrgentOut]
    skipped: List[SkippedOut]


class PlanBOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    unico: str
    mc_pb: str = Field(..., alias="McPb")
    plan_b: bool = Field(True, alias="Plan_B")


class ErrorResponse(BaseModel):
    error: str
    missing: Optional[List[str]] = None
