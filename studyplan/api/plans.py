"""Week view and plan creation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from loguru import logger

from studyplan.api.dependencies.auth import get_principal
from studyplan.api.dependencies.services import get_directory, get_lifecycle, get_store, get_week_view_assembler
from studyplan.api.schemas.todo import CreatePlanRequest
from studyplan.plans.lifecycle import PlanLifecycle
from studyplan.plans.store import PlanStore
from studyplan.plans.types import PlanRecord, WeekView
from studyplan.plans.week_view import WeekViewAssembler
from studyplan.users.directory import Directory, Principal

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("/{student_id}", response_model=list[PlanRecord])
def list_plans(
    student_id: str,
    principal: Principal = Depends(get_principal),
    directory: Directory = Depends(get_directory),
    store: PlanStore = Depends(get_store),
) -> list[PlanRecord]:
    """List every plan of a student, newest week first."""
    directory.resolve_actor(principal, student_id)
    directory.get_student(student_id)
    return store.list_plans(student_id)


@router.get("/{student_id}/{week_identifier}", response_model=WeekView)
def get_week(
    student_id: str,
    week_identifier: str,
    principal: Principal = Depends(get_principal),
    directory: Directory = Depends(get_directory),
    assembler: WeekViewAssembler = Depends(get_week_view_assembler),
) -> WeekView:
    """Get the week view of a student's plan.

    week_identifier is any yyyy-MM-dd date in the week; an unparseable
    value shows the current week.
    """
    actor = directory.resolve_actor(principal, student_id)
    return assembler.assemble_week(student_id, week_identifier, actor)


@router.post("/{student_id}/{week_identifier}", response_model=PlanRecord, status_code=status.HTTP_201_CREATED)
def create_plan(
    student_id: str,
    week_identifier: str,
    request: CreatePlanRequest | None = None,
    principal: Principal = Depends(get_principal),
    directory: Directory = Depends(get_directory),
    lifecycle: PlanLifecycle = Depends(get_lifecycle),
    assembler: WeekViewAssembler = Depends(get_week_view_assembler),
) -> PlanRecord:
    """Create the plan for a student's week (409 if it already exists).

    The body is optional; without one the plan starts as an empty draft.
    """
    request = request or CreatePlanRequest()
    actor = directory.resolve_actor(principal, student_id)
    week_start = assembler.resolve_week(week_identifier)
    logger.info(f"POST /plans/{student_id}/{week_identifier} by {principal.kind.value}:{principal.principal_id}")
    return lifecycle.create_plan(student_id, week_start, actor=actor, status=request.status, notes=request.notes)
