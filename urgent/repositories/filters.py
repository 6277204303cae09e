# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Query filters for the urgent listing endpoints.

Raw query-string values are parsed into a closed set of typed filters, and
each filter compiles to one SQL fragment with its own bound parameters. The
fragments are constant text; user input only ever travels as bind values.

    GET /urgent?status=NOK&machines=MC1,MC2&declaredBy=588
        -> [StatusEquals("NOK"), MachineIn(("MC1", "MC2")), DeclaredByContains("588")]
        -> UPPER(urg.status) = :status AND (... = :mach0 OR ... = :mach1) AND (...)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import DateTime, bindparam

NBSP = "\u00a0"
TAB = "\t"
MACHINE_PARAMS = {"nbsp": NBSP, "tab": TAB}

# Stored machine with NBSP / TAB turned into spaces, trimmed and upper-cased.
NORMALIZED_MACHINE = "UPPER(TRIM(REPLACE(REPLACE(urg.machine, :nbsp, ' '), :tab, ' ')))"

_ESCAPE = "ESCAPE '\\'"


def present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def normalize_machine(value: str) -> str:
    return value.replace(NBSP, " ").replace(TAB, " ").strip().upper()


def contains_pattern(value: str) -> str:
    escaped = value.strip().upper().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def parse_timestamp(value: str) -> Optional[datetime]:
    """ISO-8601 timestamp or date; naive values are read as UTC. None if unparseable."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Clause:
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    types: Dict[str, Any] = field(default_factory=dict)


class Filter(ABC):
    @abstractmethod
    def compile(self) -> Clause:
        """One SQL fragment plus the binds it needs."""


@dataclass(frozen=True)
class StatusEquals(Filter):
    status: str

    def compile(self) -> Clause:
        return Clause("UPPER(urg.status) = :status", {"status": self.status.strip().upper()})


@dataclass(frozen=True)
class UnicoContains(Filter):
    text: str

    def compile(self) -> Clause:
        return Clause(f"UPPER(urg.unico) LIKE :unico {_ESCAPE}", {"unico": contains_pattern(self.text)})


@dataclass(frozen=True)
class MachineEquals(Filter):
    machine: str

    def compile(self) -> Clause:
        return Clause(
            f"{NORMALIZED_MACHINE} = :machine",
            {"machine": normalize_machine(self.machine), **MACHINE_PARAMS},
        )


@dataclass(frozen=True)
class MachineIn(Filter):
    machines: Tuple[str, ...]

    def compile(self) -> Clause:
        params: Dict[str, Any] = dict(MACHINE_PARAMS)
        parts = []
        for i, machine in enumerate(self.machines):
            params[f"mach{i}"] = normalize_machine(machine)
            parts.append(f"{NORMALIZED_MACHINE} = :mach{i}")
        return Clause(f"({' OR '.join(parts)})", params)


@dataclass(frozen=True)
class MachineContains(Filter):
    text: str

    def compile(self) -> Clause:
        return Clause(
            f"{NORMALIZED_MACHINE} LIKE :machine_like {_ESCAPE}",
            {"machine_like": contains_pattern(normalize_machine(self.text)), **MACHINE_PARAMS},
        )


@dataclass(frozen=True)
class DateFrom(Filter):
    moment: datetime

    def compile(self) -> Clause:
        return Clause("urg.declared_at >= :date_from", {"date_from": self.moment},
                      {"date_from": DateTime(timezone=True)})


@dataclass(frozen=True)
class DateTo(Filter):
    moment: datetime

    def compile(self) -> Clause:
        return Clause("urg.declared_at <= :date_to", {"date_to": self.moment},
                      {"date_to": DateTime(timezone=True)})


def _actor_clause(column: str, alias: str, key: str, text: str) -> Clause:
    # One OR-group so a blank name column never hides a matching badge.
    return Clause(
        f"(UPPER(TRIM(urg.{column})) LIKE :{key} {_ESCAPE}"
        f" OR UPPER({alias}.last_name) LIKE :{key} {_ESCAPE}"
        f" OR UPPER({alias}.first_name) LIKE :{key} {_ESCAPE})",
        {key: contains_pattern(text)},
    )


@dataclass(frozen=True)
class DeclaredByContains(Filter):
    text: str

    def compile(self) -> Clause:
        return _actor_clause("declared_by", "decl", "declared_by", self.text)


@dataclass(frozen=True)
class CorrectedByContains(Filter):
    text: str

    def compile(self) -> Clause:
        return _actor_clause("corrected_by", "corr", "corrected_by", self.text)


@dataclass(frozen=True)
class Predicate:
    clauses: Tuple[str, ...] = ()
    params: Dict[str, Any] = field(default_factory=dict)
    types: Dict[str, Any] = field(default_factory=dict)

    def where_sql(self, *leading: str) -> str:
        clauses = list(leading) + list(self.clauses)
        return (" WHERE " + " AND ".join(clauses)) if clauses else ""

    def bind_types(self) -> list:
        return [bindparam(name, type_=type_) for name, type_ in self.types.items()]


def parse_filters(query: Mapping[str, Optional[str]], include_machine: bool = True) -> List[Filter]:
    """Turn raw query parameters into typed filters. Blank values are skipped."""
    filters: List[Filter] = []

    def value(key: str) -> Optional[str]:
        raw = query.get(key)
        return str(raw).strip() if present(raw) else None

    if value("status"):
        filters.append(StatusEquals(value("status")))
    if value("unico"):
        filters.append(UnicoContains(value("unico")))
    for key, kind in (("from", DateFrom), ("to", DateTo)):
        if value(key):
            moment = parse_timestamp(value(key))
            if moment is not None:
                filters.append(kind(moment))
    if value("declaredBy"):
        filters.append(DeclaredByContains(value("declaredBy")))
    if value("correctedBy"):
        filters.append(CorrectedByContains(value("correctedBy")))

    if include_machine:
        if value("machines"):
            machines = tuple(m.strip() for m in value("machines").split(",") if m.strip())
            if machines:
                filters.append(MachineIn(machines))
        elif value("machine"):
            filters.append(MachineEquals(value("machine")))
        if value("machineLike"):
            filters.append(MachineContains(value("machineLike")))
    return filters


def compile_filters(filters: List[Filter]) -> Predicate:
    clauses: List[str] = []
    params: Dict[str, Any] = {}
    types: Dict[str, Any] = {}
    for f in filters:
        clause = f.compile()
        clauses.append(clause.sql)
        params.update(clause.params)
        types.update(clause.types)
    return Predicate(tuple(clauses), params, types)
