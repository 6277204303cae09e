# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

STATUS_ACTIVE = "NOK"
STATUS_RESOLVED = "OK"

EVENT_ADDED = "urgent:added"
EVENT_PLANB = "urgent:planb"
EVENT_RESOLVED = "urgent:resolved"


def clean(value: Any) -> Optional[str]:
    """Trim a loosely-typed value; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def full_name(first_name: Any, last_name: Any) -> Optional[str]:
    if not (clean(first_name) or clean(last_name)):
        return None
    return f"{clean(first_name) or ''} {clean(last_name) or ''}".strip()


def identity(matricule: Any, first_name: Any = None, last_name: Any = None,
             role: Any = None) -> Dict[str, Optional[str]]:
    return {
        "matricule": clean(matricule),
        "full_name": full_name(first_name, last_name),
        "role": clean(role),
    }


@dataclass(frozen=True)
class Operator:
    """An authenticated badge holder."""
    matricule: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None

    def to_identity(self) -> Dict[str, Optional[str]]:
        return identity(self.matricule, self.first_name, self.last_name, self.role)


@dataclass(frozen=True)
class UrgentDraft:
    """A validated declaration waiting to be inserted."""
    unico: str
    machine: str
    declared_by: str
    declared_at: datetime
    plan_b: bool = False
    mc_pb: Optional[str] = None
    type: Optional[str] = None
    time_remaining: Optional[str] = None
    status: str = STATUS_ACTIVE

    def decorate(self, urgent_id: int, declarer: Operator) -> Dict[str, Any]:
        return {
            "id": urgent_id,
            "unico": self.unico,
            "declared_at": self.declared_at,
            "corrected_at": None,
            "status": self.status,
            "machine": self.machine,
            "plan_b": self.plan_b,
            "mc_pb": self.mc_pb,
            "type": self.type.lower() if self.type else None,
            "time_remaining": self.time_remaining,
            "declared_by": declarer.to_identity(),
            "corrected_by": None,
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class UrgentEvent:
    """A lifecycle change published to the realtime channel."""
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        return {"event": self.name, "data": self.payload}

    @classmethod
    def added(cls, row: Dict[str, Any]) -> "UrgentEvent":
        return cls(EVENT_ADDED, {
            "id": row["id"],
            "unico": row["unico"],
            "machine": row["machine"],
            "type": row["type"],
            "declaredAt": _iso(row["declared_at"]),
            "by": (row.get("declared_by") or {}).get("matricule"),
        })

    @classmethod
    def plan_b(cls, urgent_id: int, unico: str, machine: Optional[str],
               urgent_type: Optional[str], mc_pb: str) -> "UrgentEvent":
        return cls(EVENT_PLANB, {
            "id": urgent_id,
            "unico": unico,
            "machine": machine,
            "type": urgent_type,
            "mcPb": mc_pb,
        })

    @classmethod
    def resolved(cls, row: Dict[str, Any]) -> "UrgentEvent":
        return cls(EVENT_RESOLVED, {
            "id": row["id"],
            "unico": row["unico"],
            "machine": row["machine"],
            "type": row["type"],
            "correctedAt": _iso(row["corrected_at"]),
            "by": (row.get("corrected_by") or {}).get("matricule"),
        })
