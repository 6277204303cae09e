# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for urgents, plus the inventory existence check."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, bindparam, text
from sqlalchemy.ext.asyncio import AsyncEngine

from urgent.core.errors import NotFound
from urgent.core.logging import get_logger
from urgent.models.domain import STATUS_ACTIVE, STATUS_RESOLVED, UrgentDraft, clean, identity
from urgent.repositories.filters import MACHINE_PARAMS, NORMALIZED_MACHINE, Predicate

logger = get_logger(__name__)

URGENT_COLS = (
    "urg.id, urg.unico, urg.machine, urg.status, urg.declared_by, urg.declared_at, "
    "urg.corrected_by, urg.corrected_at, urg.plan_b, urg.mc_pb, urg.type, urg.time_remaining"
)

IDENTITY_COLS = (
    "decl.first_name AS decl_first_name, decl.last_name AS decl_last_name, decl.role AS decl_role, "
    "corr.first_name AS corr_first_name, corr.last_name AS corr_last_name, corr.role AS corr_role"
)

USER_JOINS = """
    LEFT JOIN users AS decl ON TRIM(decl.matricule) = TRIM(urg.declared_by)
    LEFT JOIN users AS corr ON TRIM(corr.matricule) = TRIM(urg.corrected_by)
"""

RESULT_TYPES = {
    "declared_at": DateTime(timezone=True),
    "corrected_at": DateTime(timezone=True),
    "plan_b": Boolean(),
}

NO_ACTIVE_URGENT = "No NOK urgent found for this Unico."

# Write guard: the row must still be NOK when the UPDATE runs.
_STILL_ACTIVE = "UPPER(status) = :active"


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "unico": clean(row["unico"]),
        "declared_at": row["declared_at"],
        "corrected_at": row["corrected_at"],
        "status": row["status"],
        "machine": clean(row["machine"]),
        "plan_b": bool(row["plan_b"]),
        "mc_pb": row["mc_pb"],
        "type": str(row["type"]).lower() if row["type"] else None,
        "time_remaining": clean(row["time_remaining"]),
        "declared_by": identity(row["declared_by"], row["decl_first_name"],
                                row["decl_last_name"], row["decl_role"]),
        "corrected_by": identity(row["corrected_by"], row["corr_first_name"],
                                 row["corr_last_name"], row["corr_role"])
        if clean(row["corrected_by"]) else None,
    }


class UrgentRepository:
    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    # ── Read ───────────────────────────────────────────────────────────

    async def list_urgents(self, predicate: Predicate) -> List[Dict[str, Any]]:
        stmt = text(f"""
            SELECT {URGENT_COLS}, {IDENTITY_COLS}
            FROM urgents AS urg
            {USER_JOINS}
            {predicate.where_sql()}
            ORDER BY urg.declared_at DESC, urg.id DESC
        """).bindparams(*predicate.bind_types()).columns(**RESULT_TYPES)
        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt, predicate.params)).mappings().all()
        return [_row_to_dict(r) for r in rows]

    async def get_urgent(self, urgent_id: int) -> Optional[Dict[str, Any]]:
        stmt = text(f"""
            SELECT {URGENT_COLS}, {IDENTITY_COLS}
            FROM urgents AS urg
            {USER_JOINS}
            WHERE urg.id = :id
        """).columns(**RESULT_TYPES)
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt, {"id": urgent_id})).mappings().first()
        return _row_to_dict(row) if row else None

    async def distinct_machines(self, predicate: Predicate) -> List[str]:
        where = predicate.where_sql(
            "urg.machine IS NOT NULL",
            f"{NORMALIZED_MACHINE} <> ''",
            f"{NORMALIZED_MACHINE} <> '-'",
        )
        stmt = text(f"""
            SELECT DISTINCT {NORMALIZED_MACHINE} AS machine_norm
            FROM urgents AS urg
            {USER_JOINS}
            {where}
            ORDER BY machine_norm
        """).bindparams(*predicate.bind_types())
        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt, {**predicate.params, **MACHINE_PARAMS})).all()
        return [r[0] for r in rows]

    async def find_missing_unicos(self, unicos: List[str]) -> List[str]:
        """Codes from ``unicos`` that the inventory (``wires``) does not know."""
        wanted = list(dict.fromkeys(u.strip() for u in unicos if u and u.strip()))
        if not wanted:
            return []
        stmt = text(
            "SELECT DISTINCT TRIM(unico) AS unico FROM wires WHERE TRIM(unico) IN :unicos"
        ).bindparams(bindparam("unicos", expanding=True))
        async with self._engine.connect() as conn:
            found = {r[0] for r in (await conn.execute(stmt, {"unicos": wanted})).all()}
        return [u for u in wanted if u not in found]

    async def _find_active(self, unico: str) -> Optional[Dict[str, Any]]:
        # Most recent declaration wins when several NOK rows share a code.
        async with self._engine.connect() as conn:
            row = (await conn.execute(
                text("""
                    SELECT id, machine, type FROM urgents
                    WHERE TRIM(unico) = :unico AND UPPER(status) = :status
                    ORDER BY declared_at DESC, id DESC
                    LIMIT 1
                """),
                {"unico": unico.strip(), "status": STATUS_ACTIVE},
            )).mappings().first()
        return dict(row) if row else None

    # ── Write ──────────────────────────────────────────────────────────

    async def insert(self, draft: UrgentDraft) -> int:
        stmt = text("""
            INSERT INTO urgents
                (unico, machine, status, declared_by, declared_at, plan_b, mc_pb, type, time_remaining)
            VALUES
                (:unico, :machine, :status, :declared_by, :declared_at, :plan_b, :mc_pb, :type, :time_remaining)
            RETURNING id
        """).bindparams(bindparam("declared_at", type_=DateTime(timezone=True)))
        async with self._engine.begin() as conn:
            urgent_id = (await conn.execute(stmt, {
                "unico": draft.unico,
                "machine": draft.machine,
                "status": draft.status,
                "declared_by": draft.declared_by,
                "declared_at": draft.declared_at,
                "plan_b": draft.plan_b,
                "mc_pb": draft.mc_pb,
                "type": draft.type,
                "time_remaining": draft.time_remaining,
            })).scalar_one()
        return urgent_id

    async def apply_plan_b(self, unico: str, mc_pb: str) -> Dict[str, Any]:
        target = await self._find_active(unico)
        if target is None:
            raise NotFound(NO_ACTIVE_URGENT)
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE urgents SET plan_b = :plan_b, mc_pb = :mc_pb
                    WHERE id = :id AND {_STILL_ACTIVE}
                """),
                {"plan_b": True, "mc_pb": mc_pb, "id": target["id"], "active": STATUS_ACTIVE},
            )
        if result.rowcount == 0:
            # Resolved between lookup and update.
            raise NotFound(NO_ACTIVE_URGENT)
        return {
            "id": target["id"],
            "machine": clean(target["machine"]),
            "type": str(target["type"]).lower() if target["type"] else None,
        }

    async def resolve(self, unico: str, corrector: str, now: datetime) -> Dict[str, Any]:
        target = await self._find_active(unico)
        if target is None:
            raise NotFound(NO_ACTIVE_URGENT)
        stmt = text(f"""
            UPDATE urgents
            SET status = :status, corrected_by = :corrected_by, corrected_at = :corrected_at
            WHERE id = :id AND {_STILL_ACTIVE}
        """).bindparams(bindparam("corrected_at", type_=DateTime(timezone=True)))
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt, {
                "status": STATUS_RESOLVED,
                "corrected_by": corrector,
                "corrected_at": now,
                "id": target["id"],
                "active": STATUS_ACTIVE,
            })
        if result.rowcount == 0:
            # A concurrent resolve closed it first; OK is set exactly once.
            raise NotFound(NO_ACTIVE_URGENT)
        return await self.get_urgent(target["id"])
