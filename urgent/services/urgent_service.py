# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Business logic for the urgent lifecycle.

    declare ─► NOK ─► (plan B) ─► resolve ─► OK   (terminal)

Declare and resolve are credential-gated; Plan B is not. Every successful
mutation publishes exactly one event, in the order the rows were written.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from urgent.core.errors import BadRequest, NotFound
from urgent.core.logging import get_logger
from urgent.metrics import RESOLVE_SKIPPED, URGENTS_DECLARED, URGENTS_PLANB, URGENTS_RESOLVED
from urgent.models.domain import UrgentDraft, UrgentEvent, clean
from urgent.repositories.filters import compile_filters, parse_filters, present
from urgent.repositories.urgent_repository import UrgentRepository
from urgent.schemas import PlanBRequest, ResolveRequest, UrgentDeclare, UrgentItem
from urgent.services.credential_verifier import CredentialVerifier

logger = get_logger(__name__)

SKIP_REASON_NOT_FOUND = "No NOK urgent found"


class UrgentService:
    def __init__(self, repo: UrgentRepository, verifier: CredentialVerifier, publisher):
        self._repo = repo
        self._verifier = verifier
        self._publisher = publisher

    # ── Queries ────────────────────────────────────────────────────────

    async def list_urgents(self, query: Mapping[str, Optional[str]]) -> List[Dict[str, Any]]:
        return await self._repo.list_urgents(compile_filters(parse_filters(query)))

    async def list_machines(self, query: Mapping[str, Optional[str]]) -> List[str]:
        predicate = compile_filters(parse_filters(query, include_machine=False))
        return await self._repo.distinct_machines(predicate)

    # ── Transitions ────────────────────────────────────────────────────

    async def declare(self, body: UrgentDeclare) -> List[Dict[str, Any]]:
        if body.urgents is None:
            if not present(body.unico) or not present(body.machine):
                raise BadRequest("Missing unico or machine.")
            items = [UrgentItem(
                unico=body.unico, machine=body.machine, plan_b=body.plan_b,
                mc_pb=body.mc_pb, type=body.type, time_remaining=body.time_remaining,
            )]
        else:
            items = body.urgents

        if not present(body.declarer_matricule) or not present(body.password):
            raise BadRequest("Required: declarerMatricule and password.")

        unicos = [item.unico.strip() for item in items if present(item.unico)]
        if not unicos:
            raise BadRequest("No valid Unico provided.")

        declarer = await self._verifier.verify(body.declarer_matricule, body.password)

        missing = await self._repo.find_missing_unicos(unicos)
        if missing:
            logger.info("Declaration rejected, unknown Unico values=%s", missing)
            raise BadRequest("Some Unico values do not exist in wires.", missing=missing)

        results: List[Dict[str, Any]] = []
        for item in items:
            # Incomplete rows inside a batch are skipped, not reported.
            if not present(item.unico) or not present(item.machine):
                continue
            draft = UrgentDraft(
                unico=item.unico.strip(),
                machine=item.machine.strip(),
                declared_by=declarer.matricule,
                declared_at=datetime.now(timezone.utc),
                plan_b=bool(item.plan_b),
                mc_pb=clean(item.mc_pb),
                type=clean(item.type),
                time_remaining=clean(item.time_remaining),
            )
            urgent_id = await self._repo.insert(draft)
            row = draft.decorate(urgent_id, declarer)
            results.append(row)
            URGENTS_DECLARED.inc()
            self._publisher.publish(UrgentEvent.added(row))
            logger.info("Urgent declared id=%s unico=%s machine=%s by=%s",
                        urgent_id, draft.unico, draft.machine, declarer.matricule)

        if not results:
            raise BadRequest("No valid urgents inserted.")
        return results

    async def set_plan_b(self, body: PlanBRequest) -> Dict[str, Any]:
        if not present(body.unico) or not present(body.mc_pb):
            raise BadRequest("Required: unico and McPb.")
        unico = body.unico.strip()
        mc_pb = body.mc_pb.strip()

        target = await self._repo.apply_plan_b(unico, mc_pb)
        URGENTS_PLANB.inc()
        self._publisher.publish(UrgentEvent.plan_b(
            target["id"], unico, target["machine"], target["type"], mc_pb,
        ))
        logger.info("Plan B set id=%s unico=%s mcPb=%s", target["id"], unico, mc_pb)
        return {"success": True, "unico": unico, "McPb": mc_pb, "Plan_B": True}

    async def resolve(self, body: ResolveRequest) -> Tuple[List[Dict[str, Any]], List[Dict[str, str]]]:
        if not present(body.corrector_matricule) or not present(body.password):
            raise BadRequest("Required: correctorMatricule, password.")

        codes = body.unicos if body.unicos is not None else ([body.unico] if body.unico else [])
        codes = [str(code).strip() for code in codes if present(code)]
        if not codes:
            raise BadRequest('Provide "unico" or "unicos" (non-empty).')

        corrector = await self._verifier.verify(
            body.corrector_matricule, body.password,
            failure_message="Invalid corrector credentials.",
        )

        results: List[Dict[str, Any]] = []
        skipped: List[Dict[str, str]] = []
        for code in codes:
            try:
                row = await self._repo.resolve(code, corrector.matricule, datetime.now(timezone.utc))
            except NotFound:
                skipped.append({"unico": code, "reason": SKIP_REASON_NOT_FOUND})
                RESOLVE_SKIPPED.inc()
                continue
            results.append(row)
            URGENTS_RESOLVED.inc()
            self._publisher.publish(UrgentEvent.resolved(row))
            logger.info("Urgent resolved id=%s unico=%s by=%s", row["id"], code, corrector.matricule)
        return results, skipped
