"""Week view assembly.

Composes the per-week, per-day view of a student's plan annotated with
the caller's capabilities. A week without a plan still yields seven empty
day slots and plan=None.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from datetime import date

from loguru import logger

from studyplan.calendar.weeks import parse_week_identifier, week_dates, week_end, week_label, week_navigation
from studyplan.core.permissions import Actor, capabilities, require_student_scope
from studyplan.plans.store import PlanContents, PlanStore
from studyplan.plans.types import (
    CommentRecord,
    DaySlot,
    TaskRecord,
    WeekNavigationView,
    WeekSummary,
    WeekView,
    completion_rate,
)
from studyplan.users.directory import Directory


class WeekViewAssembler:
    """Builds WeekView objects from the store and the directory."""

    def __init__(
        self,
        store: PlanStore,
        directory: Directory,
        *,
        locale: str = "ja",
        max_weeks_ahead: int = 2,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._directory = directory
        self._locale = locale
        self._max_weeks_ahead = max_weeks_ahead
        self._today = today

    def resolve_week(self, week_identifier: str | date | None) -> date:
        """Resolve a week identifier against this assembler's clock."""
        return parse_week_identifier(week_identifier, today=self._today())

    def assemble_week(self, student_id: str, week_identifier: str | date | None, actor: Actor) -> WeekView:
        """Assemble the view of one student's week.

        Args:
            student_id: Student whose week is shown
            week_identifier: yyyy-MM-dd of any day in the week (unparseable
                values fall back to the current week)
            actor: Caller the permissions are computed for

        Returns:
            WeekView with exactly seven day slots

        Raises:
            NotFoundError: If the student does not exist
            PermissionDeniedError: If a viewer asks for another student's week
        """
        today = self._today()
        week_start = parse_week_identifier(week_identifier, today=today)
        require_student_scope(actor, student_id)

        student = self._directory.get_student(student_id)
        plan = self._store.get_plan(student_id, week_start)
        contents = self._store.load_plan_contents(plan.id) if plan else PlanContents([], [], {})

        tasks_by_day: dict[date, list[TaskRecord]] = defaultdict(list)
        for task in contents.tasks:
            tasks_by_day[task.target_date].append(task)
        comments_by_day: dict[date, list[CommentRecord]] = defaultdict(list)
        for comment in contents.comments:
            comments_by_day[comment.target_date].append(comment)

        days = []
        for week_day in week_dates(week_start, self._locale):
            day_tasks = sorted(tasks_by_day.get(week_day.date, []), key=lambda task: task.display_order)
            day_comments = comments_by_day.get(week_day.date, [])
            completed = sum(1 for task in day_tasks if task.is_completed)
            days.append(
                DaySlot(
                    date=week_day.date,
                    day_of_week=week_day.day_of_week,
                    tasks=day_tasks,
                    comments=day_comments,
                    order_version=contents.order_versions.get(week_day.date, 0),
                    completion_rate=completion_rate(completed, len(day_tasks)),
                    has_comments=bool(day_comments),
                )
            )

        total = len(contents.tasks)
        completed_total = sum(1 for task in contents.tasks if task.is_completed)
        navigation = week_navigation(week_start, today=today, max_weeks_ahead=self._max_weeks_ahead)

        logger.debug(
            f"[WEEK_VIEW] Assembled week {week_start} for student_id={student_id}: "
            f"plan={'yes' if plan else 'no'}, tasks={total}, comments={len(contents.comments)}"
        )
        return WeekView(
            plan=plan,
            student=student,
            days=days,
            week_start_date=week_start,
            week_end_date=week_end(week_start),
            week_label=week_label(week_start, self._locale),
            permissions=capabilities(actor),
            summary=WeekSummary(
                total_tasks=total,
                completed_tasks=completed_total,
                completion_rate=completion_rate(completed_total, total),
                has_teacher_comments=bool(contents.comments),
            ),
            navigation=WeekNavigationView(
                previous_week=navigation.previous_week,
                next_week=navigation.next_week,
                can_go_next=navigation.can_go_next,
            ),
        )
