from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Evaluation:
    """Evaluation definition.  Only the active one per course is gated on."""

    id: UUID
    course_id: UUID
    passing_score: int  # 0-100
    max_attempts: int = 1
    is_active: bool = True
    title: str = ""

    @staticmethod
    def new(
        *,
        course_id: UUID,
        passing_score: int,
        max_attempts: int = 1,
        is_active: bool = True,
        title: str = "",
    ) -> Evaluation:
        return Evaluation(
            id=uuid4(),
            course_id=course_id,
            passing_score=passing_score,
            max_attempts=max_attempts,
            is_active=is_active,
            title=title,
        )


@dataclass(frozen=True, slots=True)
class EvaluationAttempt:
    """Append-only; attempt_number starts at 1 and orders attempts."""

    id: UUID
    user_id: UUID
    evaluation_id: UUID
    attempt_number: int
    score: int  # 0-100
    passed: bool
    completed_at: int | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        evaluation_id: UUID,
        attempt_number: int,
        score: int,
        passed: bool,
        completed_at: int | None = None,
    ) -> EvaluationAttempt:
        return EvaluationAttempt(
            id=uuid4(),
            user_id=user_id,
            evaluation_id=evaluation_id,
            attempt_number=attempt_number,
            score=score,
            passed=passed,
            completed_at=completed_at,
        )
