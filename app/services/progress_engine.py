"""Batch progress engine: one DerivedStatus per assignment.

FAN-OUT / FAN-IN
------------------
For each assignment the calculator and the evaluation gate run on the
indexed snapshot independently; the signature gate reads the evaluation
result; the resolver runs last and folds all three together.  Nothing
is written back and nothing is fetched; the caller hands over one
ProgressSnapshot and gets plain values out.

FAILURE ISOLATION
------------------
  soft:  course without modules/lessons, assignment for an unknown
          course, attempt pointing at a missing evaluation.  These
          degrade to the most conservative answer and, where useful,
          log a warning.  Never raised.
  hard:  a record with an out-of-range score (InvalidScoreError) or an
          unknown activity type.  Only the affected assignment is
          rejected; it is reported in BatchResult.failures and the rest
          of the batch is still computed.
  fatal: the assignment list itself breaks its contract (duplicate
          (user, course) pairs).  InvalidSnapshotError aborts the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from app.models.assessment import Evaluation, EvaluationAttempt
from app.models.assignment import Assignment
from app.models.attendance import AttendanceSignature
from app.models.course import ACTIVITY_TYPES, Course, CourseModule, Lesson
from app.models.participant import Participant
from app.models.progress import DerivedStatus, LessonCompletion
from app.models.snapshot import ProgressSnapshot
from app.services.evaluation_gate import InvalidScoreError, evaluate_gate
from app.services.progress_calculator import calculate_progress
from app.services.signature_gate import evaluate_signature_gate
from app.services.status_resolver import days_inactive, is_inactive, resolve_status

logger = logging.getLogger(__name__)


class InvalidSnapshotError(ValueError):
    """The snapshot as a whole violates the input contract."""


class InvalidAssignmentError(ValueError):
    """A single assignment can't be evaluated."""


@dataclass(frozen=True, slots=True)
class AssignmentFailure:
    user_id: UUID
    course_id: UUID
    reason: str
    kind: str = "invalid_score"  # invalid_score|invalid_assignment


@dataclass(frozen=True, slots=True)
class BatchResult:
    statuses: tuple[DerivedStatus, ...] = ()
    failures: tuple[AssignmentFailure, ...] = ()


class SnapshotIndex:
    """Lookup tables over one snapshot, built once per batch."""

    def __init__(self, snapshot: ProgressSnapshot) -> None:
        self.snapshot = snapshot
        self.courses: dict[UUID, Course] = {c.id: c for c in snapshot.courses}
        self.participants: dict[UUID, Participant] = {
            p.id: p for p in snapshot.participants
        }

        self.modules_by_course: dict[UUID, list[CourseModule]] = {}
        for module in sorted(snapshot.modules, key=lambda m: m.position):
            self.modules_by_course.setdefault(module.course_id, []).append(module)

        self.lessons_by_module: dict[UUID, list[Lesson]] = {}
        for lesson in sorted(snapshot.lessons, key=lambda l: l.position):
            self.lessons_by_module.setdefault(lesson.module_id, []).append(lesson)

        # Upsert semantics: the last record for (user, lesson) wins.
        latest: dict[tuple[UUID, UUID], LessonCompletion] = {}
        for completion in snapshot.completions:
            latest[(completion.user_id, completion.lesson_id)] = completion
        self.completions_by_user: dict[UUID, list[LessonCompletion]] = {}
        for (user_id, _), completion in latest.items():
            self.completions_by_user.setdefault(user_id, []).append(completion)

        self.evaluation_ids: set[UUID] = {e.id for e in snapshot.evaluations}
        self.active_evaluation: dict[UUID, Evaluation] = {}
        for evaluation in snapshot.evaluations:
            if not evaluation.is_active:
                continue
            if evaluation.course_id in self.active_evaluation:
                logger.warning(
                    "Ignoring extra active evaluation id=%s course=%s",
                    evaluation.id,
                    evaluation.course_id,
                )
                continue
            self.active_evaluation[evaluation.course_id] = evaluation

        self.attempts: dict[tuple[UUID, UUID], list[EvaluationAttempt]] = {}
        for attempt in snapshot.attempts:
            if attempt.evaluation_id not in self.evaluation_ids:
                logger.warning(
                    "Ignoring attempt id=%s: no evaluation definition id=%s",
                    attempt.id,
                    attempt.evaluation_id,
                )
                continue
            self.attempts.setdefault((attempt.user_id, attempt.evaluation_id), []).append(
                attempt
            )

        self.signatures_by_user: dict[UUID, list[AttendanceSignature]] = {}
        for signature in snapshot.signatures:
            self.signatures_by_user.setdefault(signature.user_id, []).append(signature)

        self.certificates = {(c.user_id, c.course_id): c for c in snapshot.certificates}

    def course_modules(self, course_id: UUID) -> list[CourseModule]:
        return self.modules_by_course.get(course_id, [])

    def course_lessons(self, course_id: UUID) -> list[Lesson]:
        lessons: list[Lesson] = []
        for module in self.course_modules(course_id):
            lessons.extend(self.lessons_by_module.get(module.id, []))
        return lessons

    def user_attempts(self, user_id: UUID, course_id: UUID) -> list[EvaluationAttempt]:
        evaluation = self.active_evaluation.get(course_id)
        if evaluation is None:
            return []
        return self.attempts.get((user_id, evaluation.id), [])


def validate_assignments(assignments: tuple[Assignment, ...]) -> None:
    seen: set[tuple[UUID, UUID]] = set()
    for assignment in assignments:
        if assignment.key in seen:
            raise InvalidSnapshotError(
                f"duplicate assignment user={assignment.user_id}"
                f" course={assignment.course_id}"
            )
        seen.add(assignment.key)


def compute_status(
    index: SnapshotIndex,
    assignment: Assignment,
    *,
    now: int,
    inactivity_days: int = 15,
    block_attendance_certificates: bool = True,
) -> DerivedStatus:
    """Derive the status of one assignment.

    Raises:
        InvalidScoreError: the course's evaluation or one of the user's
            attempts has an out-of-range score.
        InvalidAssignmentError: unknown activity type.
    """
    user_id, course_id = assignment.key
    activity_type = assignment.activity_type
    if activity_type not in ACTIVITY_TYPES:
        raise InvalidAssignmentError(f"unknown activity_type {activity_type!r}")

    course = index.courses.get(course_id)
    if course is None:
        logger.warning("Assignment references unknown course=%s", course_id)

    progress = calculate_progress(
        index.course_modules(course_id),
        index.course_lessons(course_id),
        index.completions_by_user.get(user_id, []),
    )
    evaluation = evaluate_gate(
        activity_type=activity_type,
        requires_evaluation=course.requires_evaluation if course is not None else False,
        evaluation=index.active_evaluation.get(course_id),
        attempts=index.user_attempts(user_id, course_id),
    )
    signature = evaluate_signature_gate(
        user_id=user_id,
        course_id=course_id,
        activity_type=activity_type,
        evaluation=evaluation,
        signatures=index.signatures_by_user.get(user_id, []),
    )
    has_certificate = (user_id, course_id) in index.certificates
    resolution = resolve_status(
        activity_type=activity_type,
        progress=progress,
        evaluation=evaluation,
        signature=signature,
        has_certificate=has_certificate,
        block_attendance_certificates=block_attendance_certificates,
    )

    inactive_days = days_inactive(assignment.last_activity_at, now)
    participant = index.participants.get(user_id)

    return DerivedStatus(
        user_id=user_id,
        course_id=course_id,
        activity_type=activity_type,
        status=resolution.status,
        progress=progress,
        evaluation=evaluation,
        signature=signature,
        certificate_eligible=resolution.certificate_eligible,
        certificate_allowed=resolution.certificate_allowed,
        has_certificate=has_certificate,
        company_id=participant.company_id if participant is not None else None,
        evaluation_failed=resolution.evaluation_failed,
        last_activity_at=assignment.last_activity_at,
        days_inactive=inactive_days,
        is_inactive=is_inactive(resolution.status, inactive_days, inactivity_days),
    )


def compute_statuses(
    snapshot: ProgressSnapshot,
    *,
    now: int,
    inactivity_days: int = 15,
    block_attendance_certificates: bool = True,
) -> BatchResult:
    """Evaluate every assignment in the snapshot.

    Raises:
        InvalidSnapshotError: duplicate (user, course) assignments.
    """
    return evaluate_index(
        SnapshotIndex(snapshot),
        now=now,
        inactivity_days=inactivity_days,
        block_attendance_certificates=block_attendance_certificates,
    )


def evaluate_index(
    index: SnapshotIndex,
    *,
    now: int,
    inactivity_days: int = 15,
    block_attendance_certificates: bool = True,
) -> BatchResult:
    """Same as compute_statuses, for callers that keep the index around."""
    validate_assignments(index.snapshot.assignments)

    statuses: list[DerivedStatus] = []
    failures: list[AssignmentFailure] = []
    for assignment in index.snapshot.assignments:
        try:
            statuses.append(
                compute_status(
                    index,
                    assignment,
                    now=now,
                    inactivity_days=inactivity_days,
                    block_attendance_certificates=block_attendance_certificates,
                )
            )
        except (InvalidScoreError, InvalidAssignmentError) as exc:
            logger.warning(
                "Rejected assignment user=%s course=%s: %s",
                assignment.user_id,
                assignment.course_id,
                exc,
            )
            failures.append(
                AssignmentFailure(
                    user_id=assignment.user_id,
                    course_id=assignment.course_id,
                    reason=str(exc),
                    kind=(
                        "invalid_score"
                        if isinstance(exc, InvalidScoreError)
                        else "invalid_assignment"
                    ),
                )
            )

    logger.debug(
        "Computed %d statuses (%d rejected)", len(statuses), len(failures)
    )
    return BatchResult(statuses=tuple(statuses), failures=tuple(failures))
