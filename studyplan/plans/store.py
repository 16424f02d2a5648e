"""Plan Store - persistence for plans, tasks and teacher comments.

Single owner of plan state. Every public operation is one unit of work
(one session, committed on success) run under the transient-failure
retry policy. Task and comment mutations are gated by the permission
engine; plan-level transitions are gated by the lifecycle controller.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import TypeVar

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studyplan.calendar.weeks import require_week_start, require_within_week
from studyplan.core.errors import (
    EmptyContentError,
    IncompleteReorderSetError,
    NotFoundError,
    PermissionDeniedError,
    PlanAlreadyExistsError,
    StaleOrderingError,
)
from studyplan.core.permissions import Actor, CapabilitySet, capabilities, require, require_student_scope
from studyplan.core.retry import with_store_retry
from studyplan.db.models import Comment, DayOrderVersion, Plan, Student, Task, Teacher
from studyplan.db.session import Database
from studyplan.plans.types import CommentRecord, PlanRecord, PlanStatus, TaskRecord

T = TypeVar("T")

# Supported database dialects
_UPSERT_INSERTS = {"postgresql": postgresql_insert, "sqlite": sqlite_insert}


@dataclass(frozen=True)
class PlanContents:
    """Consistent snapshot of a plan's tasks, comments and day versions."""

    tasks: list[TaskRecord]
    comments: list[CommentRecord]
    order_versions: dict[date, int]


def _clean_content(content: str | None, field: str = "content") -> str:
    cleaned = (content or "").strip()
    if not cleaned:
        raise EmptyContentError(field)
    return cleaned


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    cleaned = notes.strip()
    return cleaned or None


def _load_plan(session: Session, plan_id: str) -> Plan:
    plan = session.get(Plan, plan_id)
    if plan is None:
        raise NotFoundError("plan", plan_id)
    return plan


def _load_task(session: Session, task_id: str) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError("task", task_id)
    return task


def _load_comment(session: Session, comment_id: str) -> Comment:
    comment = session.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("comment", comment_id)
    return comment


def _day_tasks(session: Session, plan_id: str, target_date: date) -> list[Task]:
    return list(
        session.execute(
            select(Task)
            .where(Task.plan_id == plan_id, Task.target_date == target_date)
            .order_by(Task.display_order, Task.created_at)
        ).scalars()
    )


def _repack(tasks: Sequence[Task]) -> None:
    """Rewrite display_order to 1..N following the given sequence."""
    for position, task in enumerate(tasks, start=1):
        if task.display_order != position:
            task.display_order = position


def _current_version(session: Session, plan_id: str, target_date: date) -> int:
    version = session.execute(
        select(DayOrderVersion.version).where(
            DayOrderVersion.plan_id == plan_id,
            DayOrderVersion.target_date == target_date,
        )
    ).scalar_one_or_none()
    return version or 0


def _lock_day(session: Session, plan_id: str, target_date: date) -> DayOrderVersion:
    """Get the day's ordering row, creating it if missing, locked until commit.

    Every ordering change on a day takes this lock before it reads the
    day's tasks, so concurrent appends and reorders on one day run one
    after the other. The insert skips an existing row instead of failing,
    so two first writers on an empty day both end up on the same row.
    """
    insert = _UPSERT_INSERTS[session.get_bind().dialect.name]
    session.execute(
        insert(DayOrderVersion)
        .values(plan_id=plan_id, target_date=target_date, version=0)
        .on_conflict_do_nothing(index_elements=["plan_id", "target_date"])
    )
    return session.execute(
        select(DayOrderVersion)
        .where(DayOrderVersion.plan_id == plan_id, DayOrderVersion.target_date == target_date)
        .with_for_update()
    ).scalar_one()


def _lock_days(session: Session, plan_id: str, *dates: date) -> dict[date, DayOrderVersion]:
    # Ascending date order so two moves between the same days cannot deadlock
    return {day: _lock_day(session, plan_id, day) for day in sorted(set(dates))}


def _bump_version(session: Session, plan_id: str, target_date: date) -> int:
    row = _lock_day(session, plan_id, target_date)
    row.version += 1
    return row.version


def _check_version(row: DayOrderVersion, expected_version: int | None) -> None:
    if expected_version is not None and row.version != expected_version:
        raise StaleOrderingError(row.target_date, expected_version, row.version)


def _comment_record(comment: Comment, author_name: str | None) -> CommentRecord:
    return CommentRecord(
        id=comment.id,
        plan_id=comment.plan_id,
        target_date=comment.target_date,
        author_id=comment.author_id,
        author_role=comment.author_role,
        author_name=author_name,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


def _author_name(session: Session, author_id: str) -> str | None:
    teacher = session.get(Teacher, author_id)
    return teacher.display_name if teacher else None


def _require_completion_right(caps: CapabilitySet) -> None:
    # Scope was already checked, so a viewer here is looking at their own plan
    if caps.can_edit_tasks or caps.can_toggle_own_tasks:
        return
    raise PermissionDeniedError(f"Role {caps.role.value} may not change task completion")


class PlanStore:
    """Store for plans, tasks and teacher comments."""

    def __init__(
        self,
        database: Database,
        *,
        retry_attempts: int = 3,
        retry_base_delay: float = 0.2,
        retry_max_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._database = database
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._sleep = sleep

    def _run(self, name: str, work: Callable[[Session], T]) -> T:
        def unit_of_work() -> T:
            with self._database.session() as session:
                return work(session)

        return with_store_retry(
            unit_of_work,
            name=name,
            attempts=self._retry_attempts,
            base_delay=self._retry_base_delay,
            max_delay=self._retry_max_delay,
            sleep=self._sleep,
        )

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def get_plan(self, student_id: str, week_start: date) -> PlanRecord | None:
        """Get the plan for a student's week.

        Returns None when no plan exists; that is a normal result, not an error.
        """
        week_start = require_week_start(week_start)

        def work(session: Session) -> PlanRecord | None:
            plan = session.execute(
                select(Plan).where(Plan.student_id == student_id, Plan.week_start == week_start)
            ).scalar_one_or_none()
            return PlanRecord.model_validate(plan) if plan else None

        return self._run("get_plan", work)

    def get_plan_by_id(self, plan_id: str) -> PlanRecord:
        return self._run("get_plan_by_id", lambda session: PlanRecord.model_validate(_load_plan(session, plan_id)))

    def list_plans(self, student_id: str) -> list[PlanRecord]:
        """List a student's plans, newest week first."""

        def work(session: Session) -> list[PlanRecord]:
            plans = session.execute(
                select(Plan).where(Plan.student_id == student_id).order_by(Plan.week_start.desc())
            ).scalars()
            return [PlanRecord.model_validate(plan) for plan in plans]

        return self._run("list_plans", work)

    def create_plan(
        self,
        student_id: str,
        week_start: date,
        initial_status: PlanStatus = PlanStatus.DRAFT,
        notes: str | None = None,
    ) -> PlanRecord:
        """Insert a plan for (student_id, week_start).

        The existence pre-check gives a clean error in the common case; the
        uq_plans_student_week constraint turns a concurrent duplicate insert
        into the same PlanAlreadyExistsError.

        Raises:
            InvalidWeekStartError: If week_start is not a Monday
            NotFoundError: If the student does not exist
            PlanAlreadyExistsError: If a plan already exists for the week
        """
        week_start = require_week_start(week_start)

        def work(session: Session) -> PlanRecord:
            if session.get(Student, student_id) is None:
                raise NotFoundError("student", student_id)

            existing = session.execute(
                select(Plan.id).where(Plan.student_id == student_id, Plan.week_start == week_start)
            ).first()
            if existing:
                raise PlanAlreadyExistsError(student_id, week_start)

            now = datetime.now(timezone.utc)
            plan = Plan(
                student_id=student_id,
                week_start=week_start,
                status=initial_status.value,
                notes=_clean_notes(notes),
                created_at=now,
                updated_at=now,
                published_at=now if initial_status is PlanStatus.PUBLISHED else None,
            )
            session.add(plan)
            try:
                session.flush()
            except IntegrityError as e:
                logger.warning(f"[PLAN_STORE] Concurrent plan insert for student_id={student_id}, week_start={week_start}")
                raise PlanAlreadyExistsError(student_id, week_start) from e

            logger.info(f"[PLAN_STORE] Created plan id={plan.id} student_id={student_id} week_start={week_start} status={plan.status}")
            return PlanRecord.model_validate(plan)

        return self._run("create_plan", work)

    def set_plan_status(self, plan_id: str, status: PlanStatus) -> PlanRecord:
        """Persist a plan status. Transition rules live in the lifecycle controller."""

        def work(session: Session) -> PlanRecord:
            plan = _load_plan(session, plan_id)
            plan.status = status.value
            plan.updated_at = datetime.now(timezone.utc)
            if status is PlanStatus.PUBLISHED and plan.published_at is None:
                plan.published_at = plan.updated_at
            session.flush()
            return PlanRecord.model_validate(plan)

        return self._run("set_plan_status", work)

    def update_plan_notes(self, plan_id: str, notes: str | None, *, actor: Actor) -> PlanRecord:
        """Replace the plan's free-text notes; blank clears them."""
        require(capabilities(actor), "can_edit_tasks")

        def work(session: Session) -> PlanRecord:
            plan = _load_plan(session, plan_id)
            require_student_scope(actor, plan.student_id)
            plan.notes = _clean_notes(notes)
            plan.updated_at = datetime.now(timezone.utc)
            session.flush()
            return PlanRecord.model_validate(plan)

        return self._run("update_plan_notes", work)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_tasks(self, plan_id: str, target_date: date | None = None) -> list[TaskRecord]:
        """List a plan's tasks ordered by day, then display_order."""

        def work(session: Session) -> list[TaskRecord]:
            _load_plan(session, plan_id)
            query = select(Task).where(Task.plan_id == plan_id)
            if target_date is not None:
                query = query.where(Task.target_date == target_date)
            tasks = session.execute(query.order_by(Task.target_date, Task.display_order)).scalars()
            return [TaskRecord.model_validate(task) for task in tasks]

        return self._run("list_tasks", work)

    def list_comments(self, plan_id: str, target_date: date | None = None) -> list[CommentRecord]:
        """List a plan's comments ordered by day, then creation time."""

        def work(session: Session) -> list[CommentRecord]:
            _load_plan(session, plan_id)
            query = (
                select(Comment, Teacher.display_name)
                .outerjoin(Teacher, Teacher.id == Comment.author_id)
                .where(Comment.plan_id == plan_id)
            )
            if target_date is not None:
                query = query.where(Comment.target_date == target_date)
            rows = session.execute(query.order_by(Comment.target_date, Comment.created_at)).all()
            return [_comment_record(comment, author_name) for comment, author_name in rows]

        return self._run("list_comments", work)

    def load_plan_contents(self, plan_id: str) -> PlanContents:
        """Load tasks, comments and day versions of a plan in one unit of work."""

        def work(session: Session) -> PlanContents:
            _load_plan(session, plan_id)
            tasks = session.execute(
                select(Task).where(Task.plan_id == plan_id).order_by(Task.target_date, Task.display_order)
            ).scalars()
            rows = session.execute(
                select(Comment, Teacher.display_name)
                .outerjoin(Teacher, Teacher.id == Comment.author_id)
                .where(Comment.plan_id == plan_id)
                .order_by(Comment.target_date, Comment.created_at)
            ).all()
            versions = session.execute(
                select(DayOrderVersion.target_date, DayOrderVersion.version).where(DayOrderVersion.plan_id == plan_id)
            ).all()
            return PlanContents(
                tasks=[TaskRecord.model_validate(task) for task in tasks],
                comments=[_comment_record(comment, author_name) for comment, author_name in rows],
                order_versions={target_date: version for target_date, version in versions},
            )

        return self._run("load_plan_contents", work)

    def get_task(self, task_id: str) -> TaskRecord:
        return self._run("get_task", lambda session: TaskRecord.model_validate(_load_task(session, task_id)))

    def get_comment(self, comment_id: str) -> CommentRecord:
        def work(session: Session) -> CommentRecord:
            comment = _load_comment(session, comment_id)
            return _comment_record(comment, _author_name(session, comment.author_id))

        return self._run("get_comment", work)

    def order_version(self, plan_id: str, target_date: date) -> int:
        return self._run("order_version", lambda session: _current_version(session, plan_id, target_date))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        plan_id: str,
        target_date: date,
        content: str,
        *,
        actor: Actor,
        notes: str | None = None,
    ) -> TaskRecord:
        """Append a task to a day of the plan.

        display_order is max(existing orders for the day) + 1, or 1 for an
        empty day.

        Raises:
            PermissionDeniedError: If the actor may not add tasks
            OutOfWeekRangeError: If target_date is outside the plan's week
            EmptyContentError: If content is blank
        """
        require(capabilities(actor), "can_add_tasks")
        content = _clean_content(content)

        def work(session: Session) -> TaskRecord:
            plan = _load_plan(session, plan_id)
            require_student_scope(actor, plan.student_id)
            require_within_week(plan.week_start, target_date)

            _bump_version(session, plan_id, target_date)
            max_order = session.execute(
                select(func.max(Task.display_order)).where(Task.plan_id == plan_id, Task.target_date == target_date)
            ).scalar()
            now = datetime.now(timezone.utc)
            task = Task(
                plan_id=plan_id,
                target_date=target_date,
                content=content,
                is_completed=False,
                display_order=(max_order or 0) + 1,
                notes=_clean_notes(notes),
                created_at=now,
                updated_at=now,
            )
            session.add(task)
            session.flush()
            logger.info(f"[PLAN_STORE] Added task id={task.id} plan_id={plan_id} date={target_date} order={task.display_order}")
            return TaskRecord.model_validate(task)

        return self._run("add_task", work)

    def update_task(
        self,
        task_id: str,
        *,
        actor: Actor,
        content: str | None = None,
        target_date: date | None = None,
        notes: str | None = None,
        is_completed: bool | None = None,
    ) -> TaskRecord:
        """Update a task's content, day, notes or completion.

        Arguments left as None are unchanged; pass an empty string to clear
        notes. Moving a task to another day appends it to that day and
        repacks the day it left.

        Raises:
            PermissionDeniedError: If the actor may not make the change
            OutOfWeekRangeError: If target_date is outside the plan's week
            EmptyContentError: If content is given but blank
        """
        caps = capabilities(actor)
        edits_fields = content is not None or target_date is not None or notes is not None
        if edits_fields:
            require(caps, "can_edit_tasks")
        if is_completed is not None:
            _require_completion_right(caps)
        if content is not None:
            content = _clean_content(content)

        def work(session: Session) -> TaskRecord:
            task = _load_task(session, task_id)
            plan = _load_plan(session, task.plan_id)
            require_student_scope(actor, plan.student_id)

            if content is not None:
                task.content = content
            if notes is not None:
                task.notes = _clean_notes(notes)
            if is_completed is not None:
                task.is_completed = is_completed
            if target_date is not None and target_date != task.target_date:
                require_within_week(plan.week_start, target_date)
                _lock_days(session, plan.id, task.target_date, target_date)
                self._move_within_plan(session, task, target_date, position=None)
            task.updated_at = datetime.now(timezone.utc)
            session.flush()
            return TaskRecord.model_validate(task)

        return self._run("update_task", work)

    def set_task_completion(self, task_id: str, is_completed: bool, *, actor: Actor) -> TaskRecord:
        return self.update_task(task_id, actor=actor, is_completed=is_completed)

    def toggle_task(self, task_id: str, *, actor: Actor) -> TaskRecord:
        """Flip a task's completion flag."""
        _require_completion_right(capabilities(actor))

        def work(session: Session) -> TaskRecord:
            task = _load_task(session, task_id)
            plan = _load_plan(session, task.plan_id)
            require_student_scope(actor, plan.student_id)
            task.is_completed = not task.is_completed
            task.updated_at = datetime.now(timezone.utc)
            session.flush()
            logger.debug(f"[PLAN_STORE] Toggled task id={task_id} is_completed={task.is_completed}")
            return TaskRecord.model_validate(task)

        return self._run("toggle_task", work)

    def delete_task(self, task_id: str, *, actor: Actor) -> TaskRecord:
        """Delete a task and repack its day. Returns the deleted task."""
        require(capabilities(actor), "can_delete_tasks")

        def work(session: Session) -> TaskRecord:
            task = _load_task(session, task_id)
            plan = _load_plan(session, task.plan_id)
            require_student_scope(actor, plan.student_id)

            deleted = TaskRecord.model_validate(task)
            _bump_version(session, plan.id, deleted.target_date)
            session.delete(task)
            session.flush()
            _repack(_day_tasks(session, plan.id, deleted.target_date))
            session.flush()
            logger.info(f"[PLAN_STORE] Deleted task id={task_id} plan_id={plan.id} date={deleted.target_date}")
            return deleted

        return self._run("delete_task", work)

    def reorder_tasks(
        self,
        plan_id: str,
        target_date: date,
        ordered_task_ids: Sequence[str],
        *,
        actor: Actor,
        expected_version: int | None = None,
    ) -> list[TaskRecord]:
        """Rewrite a day's display orders to the positions in ordered_task_ids.

        The id list must name every task of the day exactly once. When
        expected_version is given it must equal the day's current ordering
        version, otherwise the reorder was computed against a stale view.

        Raises:
            PermissionDeniedError: If the actor may not reorder tasks
            IncompleteReorderSetError: If the ids do not match the day's tasks
            StaleOrderingError: If expected_version is outdated
        """
        require(capabilities(actor), "can_reorder_tasks")
        requested = list(ordered_task_ids)

        def work(session: Session) -> list[TaskRecord]:
            plan = _load_plan(session, plan_id)
            require_student_scope(actor, plan.student_id)
            require_within_week(plan.week_start, target_date)
            day = _lock_day(session, plan_id, target_date)
            _check_version(day, expected_version)

            tasks = _day_tasks(session, plan_id, target_date)
            existing_ids = {task.id for task in tasks}
            requested_ids = set(requested)
            duplicated = {task_id for task_id in requested_ids if requested.count(task_id) > 1}
            missing = existing_ids - requested_ids
            unexpected = requested_ids - existing_ids
            if missing or unexpected or duplicated:
                raise IncompleteReorderSetError(target_date, missing, unexpected, duplicated)

            by_id = {task.id: task for task in tasks}
            ordered = [by_id[task_id] for task_id in requested]
            _repack(ordered)
            if ordered:
                day.version += 1
            session.flush()
            logger.info(f"[PLAN_STORE] Reordered {len(ordered)} tasks plan_id={plan_id} date={target_date}")
            return [TaskRecord.model_validate(task) for task in ordered]

        return self._run("reorder_tasks", work)

    def move_task(
        self,
        task_id: str,
        target_date: date,
        position: int,
        *,
        actor: Actor,
        expected_version: int | None = None,
    ) -> TaskRecord:
        """Move a task to a 1-based position on a day of the same plan.

        Positions past the end of the day append the task. Both the source
        and the target day stay densely ordered. expected_version, when
        given, is checked against the target day's ordering version.
        """
        require(capabilities(actor), "can_reorder_tasks")

        def work(session: Session) -> TaskRecord:
            task = _load_task(session, task_id)
            plan = _load_plan(session, task.plan_id)
            require_student_scope(actor, plan.student_id)
            require_within_week(plan.week_start, target_date)
            days = _lock_days(session, plan.id, task.target_date, target_date)
            _check_version(days[target_date], expected_version)

            self._move_within_plan(session, task, target_date, position=position)
            task.updated_at = datetime.now(timezone.utc)
            session.flush()
            logger.info(f"[PLAN_STORE] Moved task id={task_id} to date={target_date} order={task.display_order}")
            return TaskRecord.model_validate(task)

        return self._run("move_task", work)

    @staticmethod
    def _move_within_plan(session: Session, task: Task, target_date: date, position: int | None) -> None:
        """Place task on target_date at position (None appends) and repack affected days."""
        source_date = task.target_date
        target_tasks = [other for other in _day_tasks(session, task.plan_id, target_date) if other.id != task.id]
        if position is None:
            index = len(target_tasks)
        else:
            index = min(max(position, 1), len(target_tasks) + 1) - 1
        target_tasks.insert(index, task)

        task.target_date = target_date
        _repack(target_tasks)
        _bump_version(session, task.plan_id, target_date)

        if source_date != target_date:
            session.flush()
            _repack(_day_tasks(session, task.plan_id, source_date))
            _bump_version(session, task.plan_id, source_date)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, plan_id: str, target_date: date, content: str, *, actor: Actor) -> CommentRecord:
        """Add a comment authored by the actor to a day of the plan."""
        require(capabilities(actor), "can_add_comments")
        content = _clean_content(content)

        def work(session: Session) -> CommentRecord:
            plan = _load_plan(session, plan_id)
            require_student_scope(actor, plan.student_id)
            require_within_week(plan.week_start, target_date)

            now = datetime.now(timezone.utc)
            comment = Comment(
                plan_id=plan_id,
                target_date=target_date,
                author_id=actor.actor_id,
                author_role=actor.role.value,
                content=content,
                created_at=now,
                updated_at=now,
            )
            session.add(comment)
            session.flush()
            logger.info(f"[PLAN_STORE] Added comment id={comment.id} plan_id={plan_id} date={target_date} author_id={actor.actor_id}")
            return _comment_record(comment, _author_name(session, actor.actor_id))

        return self._run("add_comment", work)

    @staticmethod
    def _require_comment_owner(actor: Actor, comment: Comment) -> None:
        if actor.is_admin or comment.author_id == actor.actor_id:
            return
        raise PermissionDeniedError(f"Actor {actor.actor_id} is not the author of comment {comment.id}")

    def update_comment(self, comment_id: str, content: str, *, actor: Actor) -> CommentRecord:
        """Edit a comment's content.

        Only the author may edit a comment; administrators may edit any.

        Raises:
            PermissionDeniedError: If the actor is neither the author nor an admin
            EmptyContentError: If content is blank
        """
        require(capabilities(actor), "can_edit_comments")
        content = _clean_content(content)

        def work(session: Session) -> CommentRecord:
            comment = _load_comment(session, comment_id)
            plan = _load_plan(session, comment.plan_id)
            require_student_scope(actor, plan.student_id)
            self._require_comment_owner(actor, comment)

            comment.content = content
            comment.updated_at = datetime.now(timezone.utc)
            session.flush()
            return _comment_record(comment, _author_name(session, comment.author_id))

        return self._run("update_comment", work)

    def delete_comment(self, comment_id: str, *, actor: Actor) -> CommentRecord:
        """Delete a comment (author or admin only). Returns the deleted comment."""
        require(capabilities(actor), "can_edit_comments")

        def work(session: Session) -> CommentRecord:
            comment = _load_comment(session, comment_id)
            plan = _load_plan(session, comment.plan_id)
            require_student_scope(actor, plan.student_id)
            self._require_comment_owner(actor, comment)

            deleted = _comment_record(comment, _author_name(session, comment.author_id))
            session.delete(comment)
            logger.info(f"[PLAN_STORE] Deleted comment id={comment_id} plan_id={plan.id}")
            return deleted

        return self._run("delete_comment", work)
