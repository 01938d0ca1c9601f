"""Roll per-assignment statuses up into report statistics.

Every function here is a pure reduce over DerivedStatus values.  Company
grouping is partition-then-reduce: no group can affect another.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from app.models.progress import (
    COMPLETED_STATUSES,
    IN_PROGRESS_STATUSES,
    AggregateStats,
    CompanyStats,
    DerivedStatus,
    ParticipantSummary,
)
from app.services.progress_calculator import round_half_up


def aggregate(statuses: Iterable[DerivedStatus]) -> AggregateStats:
    total = in_progress = completed = not_started = inactive = certificates = 0
    progress_sum = 0

    for s in statuses:
        total += 1
        progress_sum += s.progress_percent
        if s.status in IN_PROGRESS_STATUSES:
            in_progress += 1
        elif s.status in COMPLETED_STATUSES:
            completed += 1
        else:
            not_started += 1
        if s.is_inactive:
            inactive += 1
        if s.has_certificate:
            certificates += 1

    return AggregateStats(
        total_assignments=total,
        in_progress=in_progress,
        completed=completed,
        not_started=not_started,
        inactive_count=inactive,
        certificates_generated=certificates,
        average_completion_rate=round_half_up(progress_sum, total),
    )


def aggregate_by_company(
    statuses: Iterable[DerivedStatus],
) -> dict[UUID | None, CompanyStats]:
    """Group by company; participants without one land under ``None``."""
    groups: dict[UUID | None, list[DerivedStatus]] = {}
    for s in statuses:
        groups.setdefault(s.company_id, []).append(s)

    return {
        company_id: CompanyStats(
            company_id=company_id,
            total_participants=len({s.user_id for s in members}),
            stats=aggregate(members),
        )
        for company_id, members in groups.items()
    }


def summarize_participant(
    user_id: UUID, statuses: Iterable[DerivedStatus]
) -> ParticipantSummary:
    """Per-participant rollup used by the reports screen.

    Evaluation counters only consider courses where the evaluation is
    required; ``pending`` includes evaluations not attempted yet.
    """
    own = [s for s in statuses if s.user_id == user_id]
    if not own:
        return ParticipantSummary(user_id=user_id)

    stats = aggregate(own)
    labels = [s.evaluation.label for s in own if s.evaluation.required]
    last_activity = max(
        (s.last_activity_at for s in own if s.last_activity_at is not None),
        default=None,
    )

    return ParticipantSummary(
        user_id=user_id,
        total_courses=stats.total_assignments,
        completed_courses=stats.completed,
        in_progress_courses=stats.in_progress,
        not_started_courses=stats.not_started,
        total_evaluations=len(labels),
        passed_evaluations=labels.count("passed"),
        failed_evaluations=labels.count("failed"),
        pending_evaluations=labels.count("pending") + labels.count("not_started"),
        certificates_generated=sum(1 for s in own if s.has_certificate),
        overall_progress=stats.average_completion_rate,
        last_activity_at=last_activity,
    )
