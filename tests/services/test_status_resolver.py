from __future__ import annotations

import itertools

import pytest

from app.models.progress import (
    EvaluationGateResult,
    LessonProgress,
    SignatureGateResult,
)
from app.services.status_resolver import days_inactive, is_inactive, resolve_status
from tests.conftest import DAY, NOW


def _progress(done: int, total: int = 10) -> LessonProgress:
    pct = (done * 100) // total if total else 0
    return LessonProgress(
        completed_lesson_count=done, total_lesson_count=total, progress_percent=pct
    )


NO_EVAL = EvaluationGateResult(required=False)
NO_SIG = SignatureGateResult(required=False, signed=True)
EMPTY = LessonProgress()


def _resolve(**overrides):
    fields = {
        "activity_type": "full_course",
        "progress": EMPTY,
        "evaluation": NO_EVAL,
        "signature": NO_SIG,
        "has_certificate": False,
    }
    fields.update(overrides)
    return resolve_status(**fields)


# ---- lifecycle ----


def test_partial_lessons_is_in_progress() -> None:
    result = _resolve(progress=_progress(3))
    assert result.status == "in_progress"
    assert result.certificate_eligible is False


def test_full_course_lessons_only_is_lessons_completed_and_eligible() -> None:
    result = _resolve(progress=_progress(10))
    assert result.status == "lessons_completed"
    assert result.certificate_eligible is True
    assert result.certificate_allowed is True


def test_topic_with_failed_attempts_is_evaluation_pending() -> None:
    evaluation = EvaluationGateResult(
        required=True,
        can_retake=True,
        attempts_used=2,
        attempts_remaining=1,
        last_score=40,
        last_attempt_passed=False,
    )
    result = _resolve(
        activity_type="topic",
        evaluation=evaluation,
        signature=SignatureGateResult(required=False, signed=False),
    )
    assert result.status == "evaluation_pending"
    assert result.evaluation_failed is True


def test_topic_passed_without_signature_is_signature_pending() -> None:
    evaluation = EvaluationGateResult(
        required=True, has_passed=True, attempts_used=1, last_attempt_passed=True
    )
    result = _resolve(
        activity_type="topic",
        evaluation=evaluation,
        signature=SignatureGateResult(required=True, signed=False),
    )
    assert result.status == "signature_pending"
    assert result.certificate_eligible is False


def test_attendance_only_unsigned_then_signed() -> None:
    unsigned = _resolve(
        activity_type="attendance_only",
        signature=SignatureGateResult(required=True, signed=False),
    )
    assert unsigned.status == "signature_pending"
    assert unsigned.certificate_eligible is False

    signed = _resolve(
        activity_type="attendance_only",
        signature=SignatureGateResult(required=True, signed=True),
    )
    assert signed.status == "completed"
    assert signed.certificate_eligible is True
    assert signed.certificate_allowed is False


def test_attendance_only_never_reports_certificate_generated_when_blocked() -> None:
    result = _resolve(
        activity_type="attendance_only",
        signature=SignatureGateResult(required=True, signed=True),
        has_certificate=True,
    )
    assert result.status == "completed"


def test_attendance_only_certificate_allowed_when_not_blocked() -> None:
    result = _resolve(
        activity_type="attendance_only",
        signature=SignatureGateResult(required=True, signed=True),
        has_certificate=True,
        block_attendance_certificates=False,
    )
    assert result.status == "certificate_generated"
    assert result.certificate_allowed is True


# ---- other rules ----


def test_nothing_done_is_not_started() -> None:
    assert _resolve().status == "not_started"


def test_topic_without_attempts_is_not_started() -> None:
    evaluation = EvaluationGateResult(required=True, can_retake=True, attempts_remaining=1)
    result = _resolve(
        activity_type="topic",
        evaluation=evaluation,
        signature=SignatureGateResult(required=False, signed=False),
    )
    assert result.status == "not_started"
    assert result.evaluation_failed is False


def test_full_course_lessons_done_with_evaluation_required_is_evaluation_pending() -> None:
    evaluation = EvaluationGateResult(required=True, can_retake=True, attempts_remaining=1)
    result = _resolve(
        progress=_progress(10),
        evaluation=evaluation,
        signature=SignatureGateResult(required=False, signed=False),
    )
    assert result.status == "evaluation_pending"
    assert result.evaluation_failed is False


def test_full_course_with_gates_cleared_is_completed() -> None:
    evaluation = EvaluationGateResult(required=True, has_passed=True, attempts_used=1)
    result = _resolve(
        progress=_progress(10),
        evaluation=evaluation,
        signature=SignatureGateResult(required=True, signed=True),
    )
    assert result.status == "completed"
    assert result.certificate_eligible is True


def test_existing_certificate_is_certificate_generated() -> None:
    result = _resolve(progress=_progress(10), has_certificate=True)
    assert result.status == "certificate_generated"
    assert result.certificate_eligible is True


def test_certificate_row_without_eligibility_does_not_generate() -> None:
    result = _resolve(progress=_progress(4), has_certificate=True)
    assert result.status == "in_progress"


def test_passed_evaluation_with_lessons_missing_stays_in_progress() -> None:
    evaluation = EvaluationGateResult(required=True, has_passed=True, attempts_used=1)
    result = _resolve(
        progress=_progress(5),
        evaluation=evaluation,
        signature=SignatureGateResult(required=True, signed=True),
    )
    assert result.status == "in_progress"
    assert result.certificate_eligible is False


# ---- properties ----


def _all_inputs():
    progresses = [EMPTY, _progress(5), _progress(10)]
    evaluations = [
        NO_EVAL,
        EvaluationGateResult(required=True, can_retake=True, attempts_remaining=2),
        EvaluationGateResult(
            required=True, attempts_used=2, last_attempt_passed=False
        ),
        EvaluationGateResult(
            required=True, has_passed=True, attempts_used=1, last_attempt_passed=True
        ),
    ]
    signatures = [
        NO_SIG,
        SignatureGateResult(required=True, signed=False),
        SignatureGateResult(required=True, signed=True),
    ]
    return itertools.product(
        ("full_course", "topic", "attendance_only"),
        progresses,
        evaluations,
        signatures,
        (False, True),
    )


def test_certificate_eligibility_implies_both_gates_satisfied() -> None:
    for activity_type, progress, evaluation, signature, has_cert in _all_inputs():
        result = _resolve(
            activity_type=activity_type,
            progress=progress,
            evaluation=evaluation,
            signature=signature,
            has_certificate=has_cert,
        )
        if result.certificate_eligible:
            assert evaluation.satisfied and signature.satisfied
        if result.status == "certificate_generated":
            assert result.certificate_eligible


def test_resolution_is_deterministic() -> None:
    for activity_type, progress, evaluation, signature, has_cert in _all_inputs():
        kwargs = {
            "activity_type": activity_type,
            "progress": progress,
            "evaluation": evaluation,
            "signature": signature,
            "has_certificate": has_cert,
        }
        assert _resolve(**kwargs) == _resolve(**kwargs)


# ---- inactivity ----


def test_twenty_days_idle_in_progress_is_inactive() -> None:
    days = days_inactive(NOW - 20 * DAY, NOW)
    assert days == 20
    assert is_inactive("in_progress", days) is True


def test_completed_assignments_are_never_inactive() -> None:
    assert is_inactive("completed", 40) is False
    assert is_inactive("certificate_generated", 40) is False


def test_no_activity_is_not_inactive() -> None:
    assert days_inactive(None, NOW) is None
    assert is_inactive("not_started", None) is False


@pytest.mark.parametrize("days,expected", [(14, False), (15, True), (16, True)])
def test_inactivity_threshold_is_inclusive(days: int, expected: bool) -> None:
    assert is_inactive("in_progress", days) is expected


def test_custom_threshold() -> None:
    assert is_inactive("in_progress", 8, threshold_days=7) is True


def test_future_activity_counts_as_zero_days() -> None:
    assert days_inactive(NOW + DAY, NOW) == 0


def test_partial_days_are_truncated() -> None:
    assert days_inactive(NOW - DAY - 3600, NOW) == 1
