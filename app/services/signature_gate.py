"""Attendance signature gate.

Two kinds of signature exist:

  - course signatures (no attempt id): the whole point of an
    attendance-only activity
  - attempt signatures: requested once a participant passes the
    evaluation, keyed by that passing attempt

Before the evaluation is passed there is nothing meaningful to sign, so
the gate reports ``required=False`` rather than blocking.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from app.models.attendance import AttendanceSignature
from app.models.course import ActivityType
from app.models.progress import EvaluationGateResult, SignatureGateResult

_NOT_REQUIRED = SignatureGateResult(required=False, signed=True)


def evaluate_signature_gate(
    *,
    user_id: UUID,
    course_id: UUID,
    activity_type: ActivityType,
    evaluation: EvaluationGateResult,
    signatures: Iterable[AttendanceSignature],
) -> SignatureGateResult:
    if activity_type == "attendance_only":
        signed = any(
            s.user_id == user_id
            and s.course_id == course_id
            and s.evaluation_attempt_id is None
            for s in signatures
        )
        return SignatureGateResult(required=True, signed=signed)

    if activity_type in ("full_course", "topic") and evaluation.required:
        if not evaluation.has_passed:
            return SignatureGateResult(required=False, signed=False)
        passed_ids = set(evaluation.passed_attempt_ids)
        signed = any(
            s.user_id == user_id and s.evaluation_attempt_id in passed_ids
            for s in signatures
        )
        return SignatureGateResult(required=True, signed=signed)

    return _NOT_REQUIRED
