"""Task, comment and plan mutation endpoints.

The caller is resolved into an actor scoped to the student who owns the
addressed plan; every mutation is then gated by the store or lifecycle.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response, status

from studyplan.api.dependencies.services import (
    actor_for_comment,
    actor_for_plan,
    actor_for_task,
    get_lifecycle,
    get_store,
)
from studyplan.api.schemas.todo import (
    CreateCommentRequest,
    CreateTaskRequest,
    MoveTaskRequest,
    ReorderTasksRequest,
    UpdateCommentRequest,
    UpdatePlanNotesRequest,
    UpdateTaskRequest,
)
from studyplan.core.permissions import Actor
from studyplan.plans.lifecycle import PlanLifecycle
from studyplan.plans.store import PlanStore
from studyplan.plans.types import CommentRecord, PlanRecord, TaskRecord

router = APIRouter(prefix="/todo", tags=["todo"])


# ============================================================================
# Plans
# ============================================================================


@router.patch("/plans/{plan_id}", response_model=PlanRecord)
def update_plan_notes(
    plan_id: str,
    request: UpdatePlanNotesRequest,
    actor: Actor = Depends(actor_for_plan),
    store: PlanStore = Depends(get_store),
) -> PlanRecord:
    return store.update_plan_notes(plan_id, request.notes, actor=actor)


@router.post("/plans/{plan_id}/publish", response_model=PlanRecord)
def publish_plan(
    plan_id: str,
    actor: Actor = Depends(actor_for_plan),
    lifecycle: PlanLifecycle = Depends(get_lifecycle),
) -> PlanRecord:
    """Publish a draft plan; publishing again is a no-op."""
    return lifecycle.publish(plan_id, actor=actor)


# ============================================================================
# Tasks
# ============================================================================


@router.post("/plans/{plan_id}/tasks", response_model=TaskRecord, status_code=status.HTTP_201_CREATED)
def add_task(
    plan_id: str,
    request: CreateTaskRequest,
    actor: Actor = Depends(actor_for_plan),
    store: PlanStore = Depends(get_store),
) -> TaskRecord:
    return store.add_task(plan_id, request.target_date, request.content, actor=actor, notes=request.notes)


@router.put("/plans/{plan_id}/days/{day}/order", response_model=list[TaskRecord])
def reorder_tasks(
    plan_id: str,
    day: date,
    request: ReorderTasksRequest,
    actor: Actor = Depends(actor_for_plan),
    store: PlanStore = Depends(get_store),
) -> list[TaskRecord]:
    """Reorder a day's tasks. task_ids must list every task of the day exactly once."""
    return store.reorder_tasks(plan_id, day, request.task_ids, actor=actor, expected_version=request.version)


@router.patch("/tasks/{task_id}", response_model=TaskRecord)
def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    actor: Actor = Depends(actor_for_task),
    store: PlanStore = Depends(get_store),
) -> TaskRecord:
    return store.update_task(
        task_id,
        actor=actor,
        content=request.content,
        target_date=request.target_date,
        notes=request.notes,
        is_completed=request.is_completed,
    )


@router.post("/tasks/{task_id}/toggle", response_model=TaskRecord)
def toggle_task(
    task_id: str,
    actor: Actor = Depends(actor_for_task),
    store: PlanStore = Depends(get_store),
) -> TaskRecord:
    return store.toggle_task(task_id, actor=actor)


@router.post("/tasks/{task_id}/move", response_model=TaskRecord)
def move_task(
    task_id: str,
    request: MoveTaskRequest,
    actor: Actor = Depends(actor_for_task),
    store: PlanStore = Depends(get_store),
) -> TaskRecord:
    """Move a task to a position on another (or the same) day of its week."""
    return store.move_task(task_id, request.target_date, request.position, actor=actor, expected_version=request.version)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    actor: Actor = Depends(actor_for_task),
    store: PlanStore = Depends(get_store),
) -> Response:
    store.delete_task(task_id, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Comments
# ============================================================================


@router.post("/plans/{plan_id}/comments", response_model=CommentRecord, status_code=status.HTTP_201_CREATED)
def add_comment(
    plan_id: str,
    request: CreateCommentRequest,
    actor: Actor = Depends(actor_for_plan),
    store: PlanStore = Depends(get_store),
) -> CommentRecord:
    return store.add_comment(plan_id, request.target_date, request.content, actor=actor)


@router.patch("/comments/{comment_id}", response_model=CommentRecord)
def update_comment(
    comment_id: str,
    request: UpdateCommentRequest,
    actor: Actor = Depends(actor_for_comment),
    store: PlanStore = Depends(get_store),
) -> CommentRecord:
    """Edit a comment. Only its author (or an admin) may do so."""
    return store.update_comment(comment_id, request.content, actor=actor)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: str,
    actor: Actor = Depends(actor_for_comment),
    store: PlanStore = Depends(get_store),
) -> Response:
    store.delete_comment(comment_id, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
