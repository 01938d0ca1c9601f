"""Status resolver: folds progress and both gates into one lifecycle status.

STATES (terminal last)
-----------------------
  not_started → in_progress → lessons_completed → evaluation_pending
  → signature_pending → completed → certificate_generated

RULES (first match wins)
-------------------------
  1. content complete AND both gates satisfied AND certificate exists
       → certificate_generated
  2. content complete AND both gates satisfied → completed
  3. signature required but missing → signature_pending
  4. evaluation required, not passed, lessons done → evaluation_pending
  5. lessons at 100% and nothing else required → lessons_completed
  6. any lesson progress → in_progress
  7. otherwise → not_started

"Content complete" depends on the activity type:
  full_course     : every lesson completed
  topic           : the evaluation was passed
  attendance_only : the attendance list was signed

Topics and attendance lists have no lessons, so for them "lessons done"
in rule 4 means the participant has engaged with the activity at all
(made an attempt or signed).  Before that they stay not_started.

``evaluation_failed`` is not a state: it annotates evaluation_pending
when the latest attempt failed, whether or not retakes remain.

A full course whose only requirement is its lessons reports
lessons_completed (eligible) until the certificate is generated; the
completed state is kept for activities that had a gate to clear.

Certificate eligibility is rules 1–2 regardless of whether a
certificate row exists.  Attendance lists never get a certificate
issued; when ``block_attendance_certificates`` is set (the default),
they report ``certificate_allowed=False`` and never go past completed.
"""

from __future__ import annotations

from app.models.course import ActivityType
from app.models.progress import (
    COMPLETED_STATUSES,
    CourseStatus,
    EvaluationGateResult,
    LessonProgress,
    SignatureGateResult,
    StatusResolution,
)

SECONDS_PER_DAY = 86400


def _content_complete(
    activity_type: ActivityType,
    progress: LessonProgress,
    evaluation: EvaluationGateResult,
    signature: SignatureGateResult,
) -> bool:
    if activity_type == "topic":
        return evaluation.has_passed
    if activity_type == "attendance_only":
        return signature.signed
    return progress.progress_percent == 100


def _lessons_done(
    activity_type: ActivityType,
    progress: LessonProgress,
    evaluation: EvaluationGateResult,
    signature: SignatureGateResult,
) -> bool:
    if activity_type in ("topic", "attendance_only"):
        return evaluation.attempts_used > 0 or (signature.required and signature.signed)
    return progress.progress_percent == 100


def resolve_status(
    *,
    activity_type: ActivityType,
    progress: LessonProgress,
    evaluation: EvaluationGateResult,
    signature: SignatureGateResult,
    has_certificate: bool,
    block_attendance_certificates: bool = True,
) -> StatusResolution:
    eligible = (
        _content_complete(activity_type, progress, evaluation, signature)
        and evaluation.satisfied
        and signature.satisfied
    )
    blocked = block_attendance_certificates and activity_type == "attendance_only"
    allowed = eligible and not blocked
    status: CourseStatus

    if eligible:
        if has_certificate and not blocked:
            status = "certificate_generated"
        elif activity_type == "full_course" and not (
            evaluation.required or signature.required
        ):
            # Lessons were the only requirement: eligible, waiting on issuance.
            status = "lessons_completed"
        else:
            status = "completed"
        return StatusResolution(
            status=status, certificate_eligible=True, certificate_allowed=allowed
        )

    if signature.required and not signature.signed:
        status = "signature_pending"
    elif (
        evaluation.required
        and not evaluation.has_passed
        and _lessons_done(activity_type, progress, evaluation, signature)
    ):
        status = "evaluation_pending"
    elif progress.progress_percent == 100 and not evaluation.required:
        status = "lessons_completed"
    elif progress.progress_percent > 0:
        status = "in_progress"
    else:
        status = "not_started"

    failed = (
        status == "evaluation_pending"
        and evaluation.attempts_used > 0
        and evaluation.last_attempt_passed is False
    )
    return StatusResolution(
        status=status,
        certificate_eligible=False,
        certificate_allowed=False,
        evaluation_failed=failed,
    )


def days_inactive(last_activity_at: int | None, now: int) -> int | None:
    """Whole days since the last recorded activity; None if there was none."""
    if last_activity_at is None:
        return None
    return max(0, (now - last_activity_at) // SECONDS_PER_DAY)


def is_inactive(
    status: CourseStatus,
    inactive_days: int | None,
    threshold_days: int = 15,
) -> bool:
    if inactive_days is None or status in COMPLETED_STATUSES:
        return False
    return inactive_days >= threshold_days
