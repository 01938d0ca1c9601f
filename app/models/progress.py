from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from app.models.course import ActivityType

CourseStatus = Literal[
    "not_started",
    "in_progress",
    "lessons_completed",
    "evaluation_pending",
    "signature_pending",
    "completed",
    "certificate_generated",
]

# Lifecycle order, terminal last.
STATUS_ORDER: tuple[CourseStatus, ...] = (
    "not_started",
    "in_progress",
    "lessons_completed",
    "evaluation_pending",
    "signature_pending",
    "completed",
    "certificate_generated",
)

IN_PROGRESS_STATUSES = frozenset(
    {"in_progress", "lessons_completed", "evaluation_pending", "signature_pending"}
)
COMPLETED_STATUSES = frozenset({"completed", "certificate_generated"})


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    """Upserted per (user_id, lesson_id); a repeat overwrites."""

    user_id: UUID
    lesson_id: UUID
    completed: bool
    completed_at: int | None = None


@dataclass(frozen=True, slots=True)
class LessonProgress:
    completed_lesson_count: int = 0
    total_lesson_count: int = 0
    progress_percent: int = 0
    completed_module_count: int = 0
    total_module_count: int = 0


@dataclass(frozen=True, slots=True)
class EvaluationGateResult:
    required: bool
    has_passed: bool = False
    can_retake: bool = False
    attempts_used: int = 0
    attempts_remaining: int = 0
    last_score: int | None = None
    last_attempt_passed: bool | None = None
    evaluation_id: UUID | None = None
    passing_attempt_id: UUID | None = None
    passed_attempt_ids: tuple[UUID, ...] = ()

    @property
    def satisfied(self) -> bool:
        return not self.required or self.has_passed

    @property
    def label(self) -> str:
        """Badge shown on the reports screen."""
        if not self.required:
            return "not_required"
        if self.has_passed:
            return "passed"
        if self.attempts_used == 0:
            return "not_started"
        return "failed" if self.attempts_remaining == 0 else "pending"


@dataclass(frozen=True, slots=True)
class SignatureGateResult:
    required: bool
    signed: bool

    @property
    def satisfied(self) -> bool:
        return not self.required or self.signed

    @property
    def label(self) -> str:
        if not self.required:
            return "not_required"
        return "signed" if self.signed else "pending"


@dataclass(frozen=True, slots=True)
class StatusResolution:
    status: CourseStatus
    certificate_eligible: bool
    # False for attendance-only activities when the no-certificate rule applies.
    certificate_allowed: bool
    evaluation_failed: bool = False


@dataclass(frozen=True, slots=True)
class DerivedStatus:
    """Computed, never persisted.  One per assignment."""

    user_id: UUID
    course_id: UUID
    activity_type: ActivityType
    status: CourseStatus
    progress: LessonProgress
    evaluation: EvaluationGateResult
    signature: SignatureGateResult
    certificate_eligible: bool
    certificate_allowed: bool
    has_certificate: bool
    company_id: UUID | None = None
    evaluation_failed: bool = False
    last_activity_at: int | None = None
    days_inactive: int | None = None
    is_inactive: bool = False

    @property
    def progress_percent(self) -> int:
        return self.progress.progress_percent


@dataclass(frozen=True, slots=True)
class AggregateStats:
    total_assignments: int = 0
    in_progress: int = 0
    completed: int = 0
    not_started: int = 0
    inactive_count: int = 0
    certificates_generated: int = 0
    average_completion_rate: int = 0


@dataclass(frozen=True, slots=True)
class CompanyStats:
    company_id: UUID | None
    total_participants: int
    stats: AggregateStats


@dataclass(frozen=True, slots=True)
class ParticipantSummary:
    user_id: UUID
    total_courses: int = 0
    completed_courses: int = 0
    in_progress_courses: int = 0
    not_started_courses: int = 0
    total_evaluations: int = 0
    passed_evaluations: int = 0
    failed_evaluations: int = 0
    pending_evaluations: int = 0
    certificates_generated: int = 0
    overall_progress: int = 0
    last_activity_at: int | None = None
