"""Evaluation gate: is an evaluation required, passed, or still retakeable?

RULES
-----
  required          = activity is a topic OR the course requires one
  has_passed        = any attempt passed (permanent: later failures
                      never revoke it)
  attempts_used     = number of attempts against the active evaluation
  attempts_remaining= max(0, max_attempts - attempts_used)
  can_retake        = not passed AND attempts remain
  last_score        = score of the highest attempt_number

A course that requires an evaluation but has no active definition is
"required but nothing to take": has_passed and can_retake stay False,
which keeps the participant at the most conservative status.

Attempt order comes from attempt_number only; timestamps are never used
to infer order.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.models.assessment import Evaluation, EvaluationAttempt
from app.models.course import ActivityType
from app.models.progress import EvaluationGateResult


class InvalidScoreError(ValueError):
    """A score or passing score outside [0, 100]; the record is rejected."""


def evaluation_required(activity_type: ActivityType, requires_evaluation: bool) -> bool:
    return activity_type == "topic" or requires_evaluation


def validate_evaluation(evaluation: Evaluation) -> None:
    if not 0 <= evaluation.passing_score <= 100:
        raise InvalidScoreError(
            f"passing_score must be within 0-100 (got {evaluation.passing_score!r}"
            f" for evaluation {evaluation.id})"
        )


def validate_attempt(attempt: EvaluationAttempt) -> None:
    if not 0 <= attempt.score <= 100:
        raise InvalidScoreError(
            f"score must be within 0-100 (got {attempt.score!r}"
            f" for attempt {attempt.id})"
        )


def evaluate_gate(
    *,
    activity_type: ActivityType,
    requires_evaluation: bool,
    evaluation: Evaluation | None,
    attempts: Iterable[EvaluationAttempt],
) -> EvaluationGateResult:
    """Compute the evaluation gate for one (user, course).

    ``attempts`` are the user's attempts; any that belong to a different
    evaluation than ``evaluation`` are ignored.

    Raises:
        InvalidScoreError: the definition or one of the attempts carries
            an out-of-range score.
    """
    required = evaluation_required(activity_type, requires_evaluation)

    if evaluation is None:
        return EvaluationGateResult(required=required)

    validate_evaluation(evaluation)

    relevant = sorted(
        (a for a in attempts if a.evaluation_id == evaluation.id),
        key=lambda a: a.attempt_number,
    )
    for attempt in relevant:
        validate_attempt(attempt)

    passed = [a for a in relevant if a.passed]
    has_passed = bool(passed)
    attempts_used = len(relevant)
    attempts_remaining = max(0, evaluation.max_attempts - attempts_used)
    last = relevant[-1] if relevant else None

    return EvaluationGateResult(
        required=required,
        has_passed=has_passed,
        can_retake=not has_passed and attempts_remaining > 0,
        attempts_used=attempts_used,
        attempts_remaining=attempts_remaining,
        last_score=last.score if last is not None else None,
        last_attempt_passed=last.passed if last is not None else None,
        evaluation_id=evaluation.id,
        passing_attempt_id=passed[0].id if passed else None,
        passed_attempt_ids=tuple(a.id for a in passed),
    )


def is_passing(score: int, evaluation: Evaluation) -> bool:
    """The pass rule used when an attempt is recorded."""
    validate_evaluation(evaluation)
    if not 0 <= score <= 100:
        raise InvalidScoreError(f"score must be within 0-100 (got {score!r})")
    return score >= evaluation.passing_score
