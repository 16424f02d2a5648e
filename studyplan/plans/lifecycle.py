"""Plan lifecycle: NonExistent -> Draft -> Published.

Published is terminal and does not freeze tasks or comments.
"""

from __future__ import annotations

from datetime import date

from loguru import logger

from studyplan.calendar.weeks import normalize_to_week_start
from studyplan.core.errors import ConflictError
from studyplan.core.permissions import Actor, capabilities, require, require_student_scope
from studyplan.plans.store import PlanStore
from studyplan.plans.types import PlanRecord, PlanStatus

_ALLOWED_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.DRAFT: frozenset({PlanStatus.PUBLISHED}),
    PlanStatus.PUBLISHED: frozenset(),
}


class PlanLifecycle:
    """Gatekeeper for plan creation and status transitions."""

    def __init__(self, store: PlanStore) -> None:
        self._store = store

    def create_plan(
        self,
        student_id: str,
        week_start: date,
        *,
        actor: Actor,
        status: PlanStatus = PlanStatus.DRAFT,
        notes: str | None = None,
    ) -> PlanRecord:
        """Create the plan for a student's week.

        Args:
            student_id: Student who owns the plan
            week_start: Any date of the week; normalized to its Monday
            actor: Caller creating the plan
            status: Initial status (creating as published needs can_publish)
            notes: Optional free-text notes

        Returns:
            The created plan

        Raises:
            PermissionDeniedError: If the actor may not create (or publish) plans
            PlanAlreadyExistsError: If the week already has a plan
        """
        caps = capabilities(actor)
        require(caps, "can_add_tasks")
        if status is PlanStatus.PUBLISHED:
            require(caps, "can_publish")
        require_student_scope(actor, student_id)

        week_start = normalize_to_week_start(week_start)
        logger.info(
            f"[LIFECYCLE] Creating plan: student_id={student_id}, week_start={week_start}, "
            f"status={status.value}, actor_id={actor.actor_id}, role={actor.role.value}"
        )
        plan = self._store.create_plan(student_id, week_start, status, notes)
        logger.info(f"[LIFECYCLE] Plan created: plan_id={plan.id}")
        return plan

    def publish(self, plan_id: str, *, actor: Actor) -> PlanRecord:
        """Publish a draft plan. Publishing a published plan is a no-op."""
        require(capabilities(actor), "can_publish")
        plan = self._store.get_plan_by_id(plan_id)
        require_student_scope(actor, plan.student_id)

        if plan.status is PlanStatus.PUBLISHED:
            logger.debug(f"[LIFECYCLE] Plan {plan_id} already published, nothing to do")
            return plan

        self._check_transition(plan, PlanStatus.PUBLISHED)
        published = self._store.set_plan_status(plan_id, PlanStatus.PUBLISHED)
        logger.info(f"[LIFECYCLE] Plan published: plan_id={plan_id}, actor_id={actor.actor_id}")
        return published

    @staticmethod
    def _check_transition(plan: PlanRecord, target: PlanStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[plan.status]:
            raise ConflictError(f"Plan {plan.id} cannot move from {plan.status.value} to {target.value}")
