"""Per-participant drill-down: lesson checklist, activity timeline, filters.

These read the same SnapshotIndex as the batch engine, so a detail view
never disagrees with the status row it was opened from.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from app.models.assignment import Assignment
from app.models.progress import DerivedStatus
from app.services.progress_engine import SnapshotIndex


@dataclass(frozen=True, slots=True)
class LessonDetail:
    module_title: str
    lesson_title: str
    completed: bool
    completed_at: int | None = None


@dataclass(frozen=True, slots=True)
class TimelineEvent:
    occurred_at: int
    type: str  # assigned|started|lesson_completed|evaluation_passed|evaluation_failed|signature|completed|certificate
    description: str


@dataclass(frozen=True, slots=True)
class CourseDates:
    started_at: int | None = None
    completed_at: int | None = None


def lesson_details(index: SnapshotIndex, user_id: UUID, course_id: UUID) -> list[LessonDetail]:
    """Every lesson of the course, in module then lesson order."""
    completions = {
        c.lesson_id: c for c in index.completions_by_user.get(user_id, [])
    }
    details: list[LessonDetail] = []
    for module in index.course_modules(course_id):
        for lesson in index.lessons_by_module.get(module.id, []):
            record = completions.get(lesson.id)
            done = record is not None and record.completed
            details.append(
                LessonDetail(
                    module_title=module.title,
                    lesson_title=lesson.title,
                    completed=done,
                    completed_at=record.completed_at if done and record else None,
                )
            )
    return details


def course_dates(
    index: SnapshotIndex, user_id: UUID, course_id: UUID, progress_percent: int
) -> CourseDates:
    """First and last lesson completion; the end date only once at 100%."""
    stamps = [
        d.completed_at
        for d in lesson_details(index, user_id, course_id)
        if d.completed_at is not None
    ]
    if not stamps:
        return CourseDates()
    return CourseDates(
        started_at=min(stamps),
        completed_at=max(stamps) if progress_percent == 100 else None,
    )


def build_timeline(
    index: SnapshotIndex,
    assignment: Assignment,
    derived: DerivedStatus | None = None,
) -> list[TimelineEvent]:
    """Dated activity for one assignment, oldest first.

    With ``derived`` given, an eligible assignment that never had
    ``completed_at`` written gets a ``completed`` event at the moment its
    last gate cleared: last lesson, passing attempt or signature.
    """
    user_id, course_id = assignment.key
    events: list[TimelineEvent] = [
        TimelineEvent(assignment.assigned_at, "assigned", "Course assigned")
    ]

    if assignment.started_at is not None:
        events.append(TimelineEvent(assignment.started_at, "started", "Started the course"))

    lesson_stamps: list[int] = []
    for detail in lesson_details(index, user_id, course_id):
        if detail.completed_at is not None:
            lesson_stamps.append(detail.completed_at)
            events.append(
                TimelineEvent(
                    detail.completed_at,
                    "lesson_completed",
                    f"Completed: {detail.lesson_title}",
                )
            )

    attempts = sorted(
        index.user_attempts(user_id, course_id), key=lambda a: a.attempt_number
    )
    for attempt in attempts:
        if attempt.completed_at is None:
            continue
        if attempt.passed:
            events.append(
                TimelineEvent(
                    attempt.completed_at,
                    "evaluation_passed",
                    f"Passed the evaluation ({attempt.score}%)",
                )
            )
        else:
            events.append(
                TimelineEvent(
                    attempt.completed_at,
                    "evaluation_failed",
                    f"Did not pass the evaluation ({attempt.score}%)",
                )
            )

    attempt_ids = {a.id for a in attempts}
    signature_stamps: list[int] = []
    for signature in index.signatures_by_user.get(user_id, []):
        if signature.evaluation_attempt_id in attempt_ids or (
            signature.evaluation_attempt_id is None and signature.course_id == course_id
        ):
            signature_stamps.append(signature.signed_at)
            events.append(
                TimelineEvent(signature.signed_at, "signature", "Signed the attendance list")
            )

    completed_at = assignment.completed_at
    if completed_at is None and derived is not None and derived.certificate_eligible:
        gates: list[int] = []
        if derived.progress_percent == 100:
            gates.extend(lesson_stamps)
        passing = next(
            (a for a in attempts if a.id == derived.evaluation.passing_attempt_id), None
        )
        if passing is not None and passing.completed_at is not None:
            gates.append(passing.completed_at)
        if derived.signature.required:
            gates.extend(signature_stamps)
        completed_at = max(gates, default=None)

    if completed_at is not None:
        events.append(TimelineEvent(completed_at, "completed", "Completed the course"))

    certificate = index.certificates.get((user_id, course_id))
    if certificate is not None:
        events.append(
            TimelineEvent(certificate.created_at, "certificate", "Certificate generated")
        )

    # sorted() is stable: same-second events keep the order above.
    return sorted(events, key=lambda e: e.occurred_at)


def filter_statuses(
    index: SnapshotIndex,
    statuses: Iterable[DerivedStatus],
    *,
    status: str | None = None,
    course_id: UUID | None = None,
    company_id: UUID | None = None,
    only_inactive: bool = False,
    search: str | None = None,
) -> list[DerivedStatus]:
    """Apply the tracking-screen filters.  ``search`` matches name, email or course title."""
    needle = (search or "").strip().lower()
    result: list[DerivedStatus] = []
    for s in statuses:
        if status and s.status != status:
            continue
        if course_id is not None and s.course_id != course_id:
            continue
        if company_id is not None and s.company_id != company_id:
            continue
        if only_inactive and not s.is_inactive:
            continue
        if needle and not _matches(index, s, needle):
            continue
        result.append(s)
    return result


def _matches(index: SnapshotIndex, s: DerivedStatus, needle: str) -> bool:
    haystack: list[str] = []
    participant = index.participants.get(s.user_id)
    if participant is not None:
        haystack.extend([participant.full_name, participant.email])
    course = index.courses.get(s.course_id)
    if course is not None:
        haystack.append(course.title)
    return any(needle in value.lower() for value in haystack)
