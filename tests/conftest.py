from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import progress_store
from app.main import app
from app.models.assessment import Evaluation, EvaluationAttempt
from app.models.assignment import Assignment
from app.models.course import Course, CourseModule, Lesson
from app.models.participant import Company, Participant
from app.models.progress import LessonCompletion
from app.repos.progress_store import InMemoryProgressStore
from app.services.cache import cache_service

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DAY = 86400
NOW = 1_760_000_000


@pytest.fixture(autouse=True)
def reset_progress_store() -> None:
    """Clear the in-memory data store between tests."""
    progress_store.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def store() -> InMemoryProgressStore:
    return progress_store


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@dataclass
class CourseFixture:
    course: Course
    modules: list[CourseModule] = field(default_factory=list)
    lessons: list[Lesson] = field(default_factory=list)

    @property
    def id(self) -> UUID:
        return self.course.id


def make_course(
    *,
    modules: int = 1,
    lessons_per_module: int = 10,
    requires_evaluation: bool = False,
    title: str = "Workplace Safety",
) -> CourseFixture:
    course = Course.new(title=title, requires_evaluation=requires_evaluation)
    fixture = CourseFixture(course=course)
    for m in range(modules):
        module = CourseModule.new(course_id=course.id, position=m, title=f"Module {m + 1}")
        fixture.modules.append(module)
        for n in range(lessons_per_module):
            fixture.lessons.append(
                Lesson.new(module_id=module.id, position=n, title=f"Lesson {m + 1}.{n + 1}")
            )
    return fixture


def completions_for(
    user_id: UUID, lessons: list[Lesson], *, at: int = NOW - DAY
) -> list[LessonCompletion]:
    return [
        LessonCompletion(user_id=user_id, lesson_id=lesson.id, completed=True, completed_at=at)
        for lesson in lessons
    ]


def make_attempts(
    user_id: UUID,
    evaluation: Evaluation,
    scores: list[int],
    *,
    at: int = NOW - DAY,
) -> list[EvaluationAttempt]:
    return [
        EvaluationAttempt.new(
            user_id=user_id,
            evaluation_id=evaluation.id,
            attempt_number=n,
            score=score,
            passed=score >= evaluation.passing_score,
            completed_at=at + n,
        )
        for n, score in enumerate(scores, start=1)
    ]


def seed_course(
    store: InMemoryProgressStore,
    fixture: CourseFixture,
    evaluation: Evaluation | None = None,
) -> None:
    store.add_course(fixture.course)
    for module in fixture.modules:
        store.add_module(module)
    for lesson in fixture.lessons:
        store.add_lesson(lesson)
    if evaluation is not None:
        store.add_evaluation(evaluation)


def seed_participant(
    store: InMemoryProgressStore,
    *,
    email: str = "ana.garcia@example.com",
    company: Company | None = None,
    first_name: str = "Ana",
    last_name: str = "Garcia",
) -> Participant:
    if company is not None:
        store.add_company(company)
    participant = Participant.new(
        first_name=first_name,
        last_name=last_name,
        email=email,
        company_id=company.id if company is not None else None,
    )
    store.add_participant(participant)
    return participant


def enroll(
    store: InMemoryProgressStore,
    user_id: UUID,
    course_id: UUID,
    *,
    activity_type: str = "full_course",
    assigned_at: int = NOW - 30 * DAY,
) -> Assignment:
    assignment = Assignment(
        user_id=user_id,
        course_id=course_id,
        assigned_at=assigned_at,
        activity_type=activity_type,
    )
    store.add_assignment(assignment)
    return assignment
