"""Root conftest for all tests.

This file makes shared fixtures available across all test modules:
an isolated in-memory database per test, seeded directory rows, the
plan services wired to it, and actors for every role.
"""

from dataclasses import dataclass
from datetime import date

import pytest

from studyplan.core.permissions import Actor, ActorRole, AssignmentStatus
from studyplan.db.models import Assignment, Student, Teacher
from studyplan.db.session import Database
from studyplan.plans.lifecycle import PlanLifecycle
from studyplan.plans.store import PlanStore
from studyplan.plans.types import PlanRecord
from studyplan.plans.week_view import WeekViewAssembler
from studyplan.users.directory import Directory

# Wednesday; its week starts on Monday 2025-01-06
TODAY = date(2025, 1, 8)
WEEK_START = date(2025, 1, 6)


@dataclass(frozen=True)
class SeedIds:
    """IDs of the directory rows every test database starts with."""

    student_id: str = "student-1"
    other_student_id: str = "student-2"
    guardian_id: str = "parent-1"
    mentor_id: str = "teacher-mentor"
    instructor_id: str = "teacher-instructor"
    ended_mentor_id: str = "teacher-ended"
    unassigned_teacher_id: str = "teacher-unassigned"
    admin_id: str = "admin-1"


@dataclass(frozen=True)
class Actors:
    admin: Actor
    mentor: Actor
    instructor: Actor
    ended_mentor: Actor
    unassigned: Actor
    viewer: Actor
    other_viewer: Actor


@pytest.fixture
def ids() -> SeedIds:
    return SeedIds()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def week_start() -> date:
    return WEEK_START


@pytest.fixture(scope="function")
def database(ids: SeedIds):
    """Provides an isolated, seeded in-memory SQLite database per test.

    Seeds two students (the first with a guardian), a mentor and an
    instructor actively assigned to the first student, a mentor whose
    assignment ended, and a teacher with no assignment.
    """
    db = Database("sqlite:///:memory:").open()
    db.create_schema()

    with db.session() as session:
        session.add_all(
            [
                Student(id=ids.student_id, display_name="Hanako Yamada", guardian_id=ids.guardian_id),
                Student(id=ids.other_student_id, display_name="Taro Suzuki"),
                Teacher(id=ids.mentor_id, display_name="Sato Sensei"),
                Teacher(id=ids.instructor_id, display_name="Tanaka Sensei"),
                Teacher(id=ids.ended_mentor_id, display_name="Ito Sensei"),
                Teacher(id=ids.unassigned_teacher_id, display_name="Kato Sensei"),
            ]
        )
        session.flush()
        session.add_all(
            [
                Assignment(teacher_id=ids.mentor_id, student_id=ids.student_id, role="mentor", status="active"),
                Assignment(teacher_id=ids.instructor_id, student_id=ids.student_id, role="instructor", status="active"),
                Assignment(teacher_id=ids.ended_mentor_id, student_id=ids.student_id, role="mentor", status="ended"),
            ]
        )

    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(database: Database) -> PlanStore:
    return PlanStore(database, retry_attempts=3, retry_base_delay=0.0, retry_max_delay=0.0, sleep=lambda _: None)


@pytest.fixture
def directory(database: Database) -> Directory:
    return Directory(database)


@pytest.fixture
def lifecycle(store: PlanStore) -> PlanLifecycle:
    return PlanLifecycle(store)


@pytest.fixture
def assembler(store: PlanStore, directory: Directory) -> WeekViewAssembler:
    return WeekViewAssembler(store, directory, locale="ja", max_weeks_ahead=2, today=lambda: TODAY)


@pytest.fixture
def actors(ids: SeedIds) -> Actors:
    return Actors(
        admin=Actor(actor_id=ids.admin_id, role=ActorRole.ADMIN),
        mentor=Actor(
            actor_id=ids.mentor_id,
            role=ActorRole.MENTOR,
            assignment_status=AssignmentStatus.ACTIVE,
            student_id=ids.student_id,
        ),
        instructor=Actor(
            actor_id=ids.instructor_id,
            role=ActorRole.INSTRUCTOR,
            assignment_status=AssignmentStatus.ACTIVE,
            student_id=ids.student_id,
        ),
        ended_mentor=Actor(
            actor_id=ids.ended_mentor_id,
            role=ActorRole.MENTOR,
            assignment_status=AssignmentStatus.ENDED,
            student_id=ids.student_id,
        ),
        unassigned=Actor(
            actor_id=ids.unassigned_teacher_id,
            role=ActorRole.UNASSIGNED_TEACHER,
            student_id=ids.student_id,
        ),
        viewer=Actor(actor_id=ids.student_id, role=ActorRole.STUDENT_VIEWER, student_id=ids.student_id),
        other_viewer=Actor(
            actor_id=ids.other_student_id,
            role=ActorRole.STUDENT_VIEWER,
            student_id=ids.other_student_id,
        ),
    )


@pytest.fixture
def plan(lifecycle: PlanLifecycle, actors: Actors, ids: SeedIds) -> PlanRecord:
    """Draft plan for the first student's week of 2025-01-06."""
    return lifecycle.create_plan(ids.student_id, WEEK_START, actor=actors.mentor)
