"""Per-assignment progress endpoints and the loader write surface.

Reads (derived, never stored):
  GET  /v1/progress/{user_id}/{course_id}            status + metrics
  GET  /v1/progress/{user_id}/{course_id}/timeline   dated activity
  GET  /v1/progress/{user_id}/{course_id}/lessons    lesson checklist

Writes (raw records the engine reads back):
  POST /v1/progress/lessons        upsert a lesson completion
  POST /v1/progress/attempts       append an evaluation attempt
  POST /v1/progress/signatures     sign an attendance list
  POST /v1/progress/certificates   issue (upsert) a certificate

Every write drops the cached report summaries.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from app.api.dependencies import CacheDep, StoreDep
from app.models.attendance import AttendanceSignature
from app.models.course import ActivityType
from app.models.credential import Certificate
from app.models.progress import CourseStatus, DerivedStatus
from app.repos.progress_store import AttemptNotAllowedError
from app.services.evaluation_gate import InvalidScoreError
from app.services.progress_detail import build_timeline, course_dates, lesson_details
from app.services.progress_engine import InvalidAssignmentError
from app.services.progress_service import (
    AssignmentNotFoundError,
    EvaluatedAssignment,
    evaluate_assignment,
    now_ts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class EvaluationOut(BaseModel):
    required: bool
    has_passed: bool
    can_retake: bool
    attempts_used: int
    attempts_remaining: int
    last_score: int | None
    passing_attempt_id: UUID | None
    label: str


class SignatureOut(BaseModel):
    required: bool
    signed: bool
    label: str


class ProgressOut(BaseModel):
    user_id: UUID
    course_id: UUID
    company_id: UUID | None
    activity_type: ActivityType
    status: CourseStatus
    progress_percent: int
    completed_lesson_count: int
    total_lesson_count: int
    completed_module_count: int
    total_module_count: int
    evaluation: EvaluationOut
    evaluation_failed: bool
    signature: SignatureOut
    certificate_eligible: bool
    certificate_allowed: bool
    has_certificate: bool
    last_activity_at: int | None
    days_inactive: int | None
    is_inactive: bool


class ProgressDetailOut(ProgressOut):
    started_at: int | None = None
    completed_at: int | None = None


class TimelineEventOut(BaseModel):
    occurred_at: int
    type: str
    description: str


class LessonDetailOut(BaseModel):
    module_title: str
    lesson_title: str
    completed: bool
    completed_at: int | None


class LessonCompletionIn(BaseModel):
    user_id: UUID
    lesson_id: UUID
    completed: bool = True


class LessonCompletionOut(BaseModel):
    user_id: UUID
    lesson_id: UUID
    completed: bool
    completed_at: int | None


class AttemptIn(BaseModel):
    user_id: UUID
    evaluation_id: UUID
    score: int = Field(ge=0, le=100)


class AttemptOut(BaseModel):
    id: UUID
    user_id: UUID
    evaluation_id: UUID
    attempt_number: int
    score: int
    passed: bool
    completed_at: int | None


class SignatureIn(BaseModel):
    user_id: UUID
    course_id: UUID | None = None
    evaluation_attempt_id: UUID | None = None


class SignatureCreatedOut(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID | None
    evaluation_attempt_id: UUID | None
    signed_at: int


class CertificateIn(BaseModel):
    user_id: UUID
    course_id: UUID
    certificate_url: str | None = None


class CertificateOut(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    completion_date: int
    certificate_url: str | None


def progress_out(s: DerivedStatus) -> ProgressOut:
    return ProgressOut(**_progress_fields(s))


def _progress_fields(s: DerivedStatus) -> dict:
    return {
        "user_id": s.user_id,
        "course_id": s.course_id,
        "company_id": s.company_id,
        "activity_type": s.activity_type,
        "status": s.status,
        "progress_percent": s.progress.progress_percent,
        "completed_lesson_count": s.progress.completed_lesson_count,
        "total_lesson_count": s.progress.total_lesson_count,
        "completed_module_count": s.progress.completed_module_count,
        "total_module_count": s.progress.total_module_count,
        "evaluation": EvaluationOut(
            required=s.evaluation.required,
            has_passed=s.evaluation.has_passed,
            can_retake=s.evaluation.can_retake,
            attempts_used=s.evaluation.attempts_used,
            attempts_remaining=s.evaluation.attempts_remaining,
            last_score=s.evaluation.last_score,
            passing_attempt_id=s.evaluation.passing_attempt_id,
            label=s.evaluation.label,
        ),
        "evaluation_failed": s.evaluation_failed,
        "signature": SignatureOut(
            required=s.signature.required,
            signed=s.signature.signed,
            label=s.signature.label,
        ),
        "certificate_eligible": s.certificate_eligible,
        "certificate_allowed": s.certificate_allowed,
        "has_certificate": s.has_certificate,
        "last_activity_at": s.last_activity_at,
        "days_inactive": s.days_inactive,
        "is_inactive": s.is_inactive,
    }


def _evaluate_or_error(
    store: StoreDep, user_id: UUID, course_id: UUID
) -> EvaluatedAssignment:
    try:
        return evaluate_assignment(store, user_id, course_id)
    except AssignmentNotFoundError:
        raise HTTPException(status_code=404, detail="assignment not found") from None
    except (InvalidScoreError, InvalidAssignmentError) as exc:
        logger.warning(
            "Invalid progress data",
            extra={"user_id": str(user_id), "course_id": str(course_id)},
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from None


async def _invalidate_reports(cache: CacheDep) -> None:
    await cache.delete_pattern("report:*")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/{user_id}/{course_id}", response_model=ProgressDetailOut)
def get_progress(user_id: UUID, course_id: UUID, store: StoreDep) -> ProgressDetailOut:
    evaluated = _evaluate_or_error(store, user_id, course_id)
    dates = course_dates(
        evaluated.index, user_id, course_id, evaluated.status.progress_percent
    )
    return ProgressDetailOut(
        **_progress_fields(evaluated.status),
        started_at=dates.started_at,
        completed_at=dates.completed_at,
    )


@router.get("/{user_id}/{course_id}/timeline", response_model=list[TimelineEventOut])
def get_timeline(
    user_id: UUID, course_id: UUID, store: StoreDep
) -> list[TimelineEventOut]:
    evaluated = _evaluate_or_error(store, user_id, course_id)
    return [
        TimelineEventOut(occurred_at=e.occurred_at, type=e.type, description=e.description)
        for e in build_timeline(evaluated.index, evaluated.assignment, evaluated.status)
    ]


@router.get("/{user_id}/{course_id}/lessons", response_model=list[LessonDetailOut])
def get_lessons(
    user_id: UUID, course_id: UUID, store: StoreDep
) -> list[LessonDetailOut]:
    evaluated = _evaluate_or_error(store, user_id, course_id)
    return [
        LessonDetailOut(
            module_title=d.module_title,
            lesson_title=d.lesson_title,
            completed=d.completed,
            completed_at=d.completed_at,
        )
        for d in lesson_details(evaluated.index, user_id, course_id)
    ]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@router.post(
    "/lessons",
    response_model=LessonCompletionOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_lesson(
    body: LessonCompletionIn, store: StoreDep, cache: CacheDep
) -> LessonCompletionOut:
    try:
        completion = store.record_lesson_completion(
            body.user_id, body.lesson_id, body.completed, now_ts()
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="lesson not found") from None

    await _invalidate_reports(cache)
    return LessonCompletionOut(
        user_id=completion.user_id,
        lesson_id=completion.lesson_id,
        completed=completion.completed,
        completed_at=completion.completed_at,
    )


@router.post("/attempts", response_model=AttemptOut, status_code=status.HTTP_201_CREATED)
async def record_attempt(body: AttemptIn, store: StoreDep, cache: CacheDep) -> AttemptOut:
    try:
        attempt = store.record_attempt(
            body.user_id, body.evaluation_id, body.score, now_ts()
        )
    except KeyError:
        raise HTTPException(status_code=404, detail="evaluation not found") from None
    except AttemptNotAllowedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from None
    except InvalidScoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from None

    logger.info(
        "Recorded attempt #%d score=%d passed=%s",
        attempt.attempt_number,
        attempt.score,
        attempt.passed,
        extra={"user_id": str(attempt.user_id)},
    )
    await _invalidate_reports(cache)
    return AttemptOut(
        id=attempt.id,
        user_id=attempt.user_id,
        evaluation_id=attempt.evaluation_id,
        attempt_number=attempt.attempt_number,
        score=attempt.score,
        passed=attempt.passed,
        completed_at=attempt.completed_at,
    )


@router.post(
    "/signatures",
    response_model=SignatureCreatedOut,
    status_code=status.HTTP_201_CREATED,
)
async def sign_attendance(
    body: SignatureIn, store: StoreDep, cache: CacheDep
) -> SignatureCreatedOut:
    if (body.course_id is None) == (body.evaluation_attempt_id is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="exactly one of course_id or evaluation_attempt_id is required",
        )

    signature = AttendanceSignature.new(
        user_id=body.user_id,
        signed_at=now_ts(),
        course_id=body.course_id,
        evaluation_attempt_id=body.evaluation_attempt_id,
    )
    try:
        store.add_signature(signature)
    except KeyError:
        raise HTTPException(status_code=404, detail="attempt not found") from None
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from None

    await _invalidate_reports(cache)
    return SignatureCreatedOut(
        id=signature.id,
        user_id=signature.user_id,
        course_id=signature.course_id,
        evaluation_attempt_id=signature.evaluation_attempt_id,
        signed_at=signature.signed_at,
    )


@router.post(
    "/certificates",
    response_model=CertificateOut,
    status_code=status.HTTP_201_CREATED,
)
async def issue_certificate(
    body: CertificateIn, store: StoreDep, cache: CacheDep
) -> CertificateOut:
    """Issue a certificate once every gate is cleared.

    Attendance lists are eligible on paper but never get a certificate.
    """
    evaluated = _evaluate_or_error(store, body.user_id, body.course_id)
    derived = evaluated.status

    if derived.certificate_eligible and not derived.certificate_allowed:
        raise HTTPException(
            status_code=409, detail="attendance lists do not issue certificates"
        )
    if not derived.certificate_eligible:
        raise HTTPException(
            status_code=409, detail=f"not eligible (status={derived.status})"
        )

    now = now_ts()
    certificate = store.upsert_certificate(
        Certificate.new(
            user_id=body.user_id,
            course_id=body.course_id,
            completion_date=now,
            created_at=now,
            certificate_url=body.certificate_url,
        )
    )
    logger.info(
        "Certificate issued",
        extra={"user_id": str(body.user_id), "course_id": str(body.course_id)},
    )
    await _invalidate_reports(cache)
    return CertificateOut(
        id=certificate.id,
        user_id=certificate.user_id,
        course_id=certificate.course_id,
        completion_date=certificate.completion_date,
        certificate_url=certificate.certificate_url,
    )
