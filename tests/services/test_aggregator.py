from __future__ import annotations

from uuid import UUID, uuid4

from app.models.progress import (
    DerivedStatus,
    EvaluationGateResult,
    LessonProgress,
    SignatureGateResult,
)
from app.services.aggregator import aggregate, aggregate_by_company, summarize_participant

ACME = uuid4()
GLOBEX = uuid4()


def _status(
    status: str,
    pct: int,
    *,
    user_id: UUID | None = None,
    company_id: UUID | None = None,
    inactive: bool = False,
    has_certificate: bool = False,
    evaluation: EvaluationGateResult | None = None,
    last_activity_at: int | None = None,
) -> DerivedStatus:
    return DerivedStatus(
        user_id=user_id or uuid4(),
        course_id=uuid4(),
        activity_type="full_course",
        status=status,
        progress=LessonProgress(progress_percent=pct),
        evaluation=evaluation or EvaluationGateResult(required=False),
        signature=SignatureGateResult(required=False, signed=True),
        certificate_eligible=status in ("completed", "certificate_generated"),
        certificate_allowed=status in ("completed", "certificate_generated"),
        has_certificate=has_certificate,
        company_id=company_id,
        is_inactive=inactive,
        last_activity_at=last_activity_at,
    )


def test_empty_input_is_all_zeros() -> None:
    stats = aggregate([])
    assert stats.total_assignments == 0
    assert stats.average_completion_rate == 0


def test_buckets_partition_the_assignments() -> None:
    statuses = [
        _status("not_started", 0),
        _status("in_progress", 40, inactive=True),
        _status("lessons_completed", 100),
        _status("evaluation_pending", 100),
        _status("signature_pending", 100),
        _status("completed", 100),
        _status("certificate_generated", 100, has_certificate=True),
    ]
    stats = aggregate(statuses)
    assert stats.total_assignments == 7
    assert stats.not_started == 1
    assert stats.in_progress == 4
    assert stats.completed == 2
    assert stats.not_started + stats.in_progress + stats.completed == stats.total_assignments
    assert stats.inactive_count == 1
    assert stats.certificates_generated == 1


def test_average_completion_rate_rounds_half_up() -> None:
    # (0 + 25) / 2 = 12.5
    stats = aggregate([_status("not_started", 0), _status("in_progress", 25)])
    assert stats.average_completion_rate == 13


def test_groups_by_company_including_no_company() -> None:
    shared_user = uuid4()
    statuses = [
        _status("completed", 100, user_id=shared_user, company_id=ACME),
        _status("in_progress", 50, user_id=shared_user, company_id=ACME),
        _status("not_started", 0, company_id=ACME),
        _status("in_progress", 20, company_id=GLOBEX),
        _status("in_progress", 60),
    ]
    groups = aggregate_by_company(statuses)

    assert set(groups) == {ACME, GLOBEX, None}
    assert groups[ACME].total_participants == 2
    assert groups[ACME].stats.total_assignments == 3
    assert groups[ACME].stats.average_completion_rate == 50
    assert groups[GLOBEX].stats.in_progress == 1
    assert groups[None].stats.average_completion_rate == 60


def test_company_totals_add_up_to_overall() -> None:
    statuses = [
        _status("completed", 100, company_id=ACME),
        _status("in_progress", 50, company_id=GLOBEX),
        _status("not_started", 0),
    ]
    groups = aggregate_by_company(statuses)
    assert sum(g.stats.total_assignments for g in groups.values()) == len(statuses)


# ---- participant summary ----


def test_participant_summary_counts_courses_and_evaluations() -> None:
    user = uuid4()
    statuses = [
        _status(
            "certificate_generated",
            100,
            user_id=user,
            has_certificate=True,
            evaluation=EvaluationGateResult(required=True, has_passed=True, attempts_used=1),
            last_activity_at=300,
        ),
        _status(
            "evaluation_pending",
            100,
            user_id=user,
            evaluation=EvaluationGateResult(
                required=True, attempts_used=2, attempts_remaining=0
            ),
            last_activity_at=500,
        ),
        _status(
            "in_progress",
            30,
            user_id=user,
            evaluation=EvaluationGateResult(required=True, attempts_remaining=1),
        ),
        _status("not_started", 0, user_id=user),
        _status("completed", 100),
    ]
    summary = summarize_participant(user, statuses)

    assert summary.total_courses == 4
    assert summary.completed_courses == 1
    assert summary.in_progress_courses == 2
    assert summary.not_started_courses == 1
    assert summary.total_evaluations == 3
    assert summary.passed_evaluations == 1
    assert summary.failed_evaluations == 1
    assert summary.pending_evaluations == 1
    assert summary.certificates_generated == 1
    # (100 + 100 + 30 + 0) / 4 = 57.5
    assert summary.overall_progress == 58
    assert summary.last_activity_at == 500


def test_participant_without_assignments_is_empty() -> None:
    user = uuid4()
    summary = summarize_participant(user, [_status("completed", 100)])
    assert summary.user_id == user
    assert summary.total_courses == 0
    assert summary.last_activity_at is None
