"""Service dependencies resolved from application state.

The lifespan handler builds one store, directory, lifecycle controller
and week view assembler per application and parks them on app.state.
"""

from __future__ import annotations

from fastapi import Depends, Request

from studyplan.api.dependencies.auth import get_principal
from studyplan.core.permissions import Actor
from studyplan.plans.lifecycle import PlanLifecycle
from studyplan.plans.store import PlanStore
from studyplan.plans.week_view import WeekViewAssembler
from studyplan.users.directory import Directory, Principal


def get_store(request: Request) -> PlanStore:
    return request.app.state.store


def get_directory(request: Request) -> Directory:
    return request.app.state.directory


def get_lifecycle(request: Request) -> PlanLifecycle:
    return request.app.state.lifecycle


def get_week_view_assembler(request: Request) -> WeekViewAssembler:
    return request.app.state.week_view


def actor_for_plan(
    plan_id: str,
    principal: Principal = Depends(get_principal),
    store: PlanStore = Depends(get_store),
    directory: Directory = Depends(get_directory),
) -> Actor:
    """Resolve the caller as an actor scoped to the plan's student."""
    plan = store.get_plan_by_id(plan_id)
    return directory.resolve_actor(principal, plan.student_id)


def actor_for_task(
    task_id: str,
    principal: Principal = Depends(get_principal),
    store: PlanStore = Depends(get_store),
    directory: Directory = Depends(get_directory),
) -> Actor:
    """Resolve the caller as an actor scoped to the task's student."""
    task = store.get_task(task_id)
    plan = store.get_plan_by_id(task.plan_id)
    return directory.resolve_actor(principal, plan.student_id)


def actor_for_comment(
    comment_id: str,
    principal: Principal = Depends(get_principal),
    store: PlanStore = Depends(get_store),
    directory: Directory = Depends(get_directory),
) -> Actor:
    """Resolve the caller as an actor scoped to the comment's student."""
    comment = store.get_comment(comment_id)
    plan = store.get_plan_by_id(comment.plan_id)
    return directory.resolve_actor(principal, plan.student_id)
