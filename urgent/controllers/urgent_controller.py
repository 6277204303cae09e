# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: urgent listing, machines, declare, Plan B, resolve."""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from urgent.core.database import STORE_ERRORS
from urgent.core.dependencies import get_urgent_service
from urgent.core.errors import InternalError
from urgent.core.logging import get_logger
from urgent.schemas import (
    ErrorResponse, MachineList, PlanBOut, PlanBRequest, ResolveOut, ResolveRequest,
    UrgentDeclare, UrgentList,
)
from urgent.services.urgent_service import UrgentService

logger = get_logger(__name__)

router = APIRouter(tags=["Urgent"])

ERRORS = {400: {"model": ErrorResponse}, 401: {"model": ErrorResponse},
          404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def filter_params(
    status: Optional[str] = None,
    unico: Optional[str] = None,
    machine: Optional[str] = None,
    machines: Optional[str] = None,
    machine_like: Optional[str] = Query(default=None, alias="machineLike"),
    date_from: Optional[str] = Query(default=None, alias="from"),
    date_to: Optional[str] = Query(default=None, alias="to"),
    declared_by: Optional[str] = Query(default=None, alias="declaredBy"),
    corrected_by: Optional[str] = Query(default=None, alias="correctedBy"),
) -> Dict[str, Optional[str]]:
    return {
        "status": status, "unico": unico, "machine": machine, "machines": machines,
        "machineLike": machine_like, "from": date_from, "to": date_to,
        "declaredBy": declared_by, "correctedBy": corrected_by,
    }


@router.get("/urgent", response_model=UrgentList, responses=ERRORS)
async def list_urgents(query: Dict[str, Optional[str]] = Depends(filter_params),
                       service: UrgentService = Depends(get_urgent_service)):
    try:
        results = await service.list_urgents(query)
    except STORE_ERRORS:
        logger.exception("Failed to fetch urgent data")
        raise InternalError("Failed to fetch urgent data")
    return UrgentList(count=len(results), results=results)


@router.get("/urgent/machines", response_model=MachineList, responses=ERRORS)
async def list_machines(query: Dict[str, Optional[str]] = Depends(filter_params),
                        service: UrgentService = Depends(get_urgent_service)):
    """Distinct normalized machines; machine filters in the query are ignored."""
    try:
        machines = await service.list_machines(query)
    except STORE_ERRORS:
        logger.exception("Failed to fetch machines")
        raise InternalError("Failed to fetch machines")
    return MachineList(count=len(machines), results=machines)


@router.post("/urgent", status_code=201, response_model=UrgentList, responses=ERRORS)
async def declare_urgents(body: UrgentDeclare,
                          service: UrgentService = Depends(get_urgent_service)):
    try:
        results = await service.declare(body)
    except STORE_ERRORS:
        logger.exception("POST /urgent failed")
        raise InternalError("Failed to declare urgent(s).")
    return UrgentList(count=len(results), results=results)


@router.patch("/urgent/planb", response_model=PlanBOut, responses=ERRORS)
async def set_plan_b(body: PlanBRequest,
                     service: UrgentService = Depends(get_urgent_service)):
    try:
        return PlanBOut(**await service.set_plan_b(body))
    except STORE_ERRORS:
        logger.exception("PATCH /urgent/planb failed")
        raise InternalError("Failed to set Plan B.")


@router.patch("/urgent/resolve", response_model=ResolveOut, responses=ERRORS)
async def resolve_urgents(body: ResolveRequest,
                          service: UrgentService = Depends(get_urgent_service)):
    try:
        results, skipped = await service.resolve(body)
    except STORE_ERRORS:
        logger.exception("PATCH /urgent/resolve failed")
        raise InternalError("Failed to resolve urgent(s).")
    return ResolveOut(count=len(results), results=results, skipped=skipped)
