"""Reporting endpoints: filtered status rows and rollups.

  GET /v1/reports/records                    filtered rows + rejected assignments
  GET /v1/reports/summary                    totals (read-through cached)
  GET /v1/reports/companies                  totals per company
  GET /v1/reports/participants/{user_id}     one participant's rollup

All of them evaluate one snapshot; a bad record shows up under
``failures`` instead of failing the request.
"""

from __future__ import annotations

import json
from uuid import UUID

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from app.api.dependencies import CacheDep, StoreDep
from app.api.progress import ProgressOut, progress_out
from app.core.config import SETTINGS
from app.models.progress import STATUS_ORDER, AggregateStats
from app.services.aggregator import aggregate, aggregate_by_company, summarize_participant
from app.services.progress_detail import filter_statuses
from app.services.progress_service import evaluate_all

router = APIRouter(prefix="/v1/reports", tags=["reports"])


class FailureOut(BaseModel):
    user_id: UUID
    course_id: UUID
    reason: str


class RecordsOut(BaseModel):
    records: list[ProgressOut]
    failures: list[FailureOut]


class SummaryOut(BaseModel):
    total_assignments: int
    in_progress: int
    completed: int
    not_started: int
    inactive_count: int
    certificates_generated: int
    average_completion_rate: int


class CompanyStatsOut(BaseModel):
    company_id: UUID | None
    company_name: str
    total_participants: int
    summary: SummaryOut


class ParticipantSummaryOut(BaseModel):
    user_id: UUID
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    not_started_courses: int
    total_evaluations: int
    passed_evaluations: int
    failed_evaluations: int
    pending_evaluations: int
    certificates_generated: int
    overall_progress: int
    last_activity_at: int | None


def _summary_out(stats: AggregateStats) -> SummaryOut:
    return SummaryOut(
        total_assignments=stats.total_assignments,
        in_progress=stats.in_progress,
        completed=stats.completed,
        not_started=stats.not_started,
        inactive_count=stats.inactive_count,
        certificates_generated=stats.certificates_generated,
        average_completion_rate=stats.average_completion_rate,
    )


@router.get("/records", response_model=RecordsOut)
def list_records(
    store: StoreDep,
    status: str | None = None,
    course_id: UUID | None = None,
    company_id: UUID | None = None,
    only_inactive: bool = False,
    search: str | None = None,
) -> RecordsOut:
    if status and status not in STATUS_ORDER:
        raise HTTPException(status_code=422, detail=f"unknown status {status!r}")

    evaluated = evaluate_all(store)
    rows = filter_statuses(
        evaluated.index,
        evaluated.result.statuses,
        status=status,
        course_id=course_id,
        company_id=company_id,
        only_inactive=only_inactive,
        search=search,
    )
    # Most recently active first, never-active last.
    rows.sort(key=lambda s: s.last_activity_at or 0, reverse=True)
    return RecordsOut(
        records=[progress_out(s) for s in rows],
        failures=[
            FailureOut(user_id=f.user_id, course_id=f.course_id, reason=f.reason)
            for f in evaluated.result.failures
        ],
    )


@router.get("/summary", response_model=SummaryOut)
async def get_summary(
    store: StoreDep,
    cache: CacheDep,
    company_id: UUID | None = None,
) -> SummaryOut:
    cache_key = f"report:summary:{company_id or 'all'}"

    cached = await cache.get(cache_key)
    if cached is not None:
        return SummaryOut(**json.loads(cached))

    # evaluate_all is synchronous and takes the store lock.
    evaluated = await run_in_threadpool(evaluate_all, store)
    statuses = evaluated.result.statuses
    if company_id is not None:
        statuses = tuple(s for s in statuses if s.company_id == company_id)
    summary = _summary_out(aggregate(statuses))

    await cache.set(cache_key, summary.model_dump_json(), SETTINGS.report_cache_ttl)
    return summary


@router.get("/companies", response_model=list[CompanyStatsOut])
def list_company_stats(store: StoreDep) -> list[CompanyStatsOut]:
    evaluated = evaluate_all(store)
    names = {c.id: c.name for c in evaluated.index.snapshot.companies}
    groups = aggregate_by_company(evaluated.result.statuses)

    out = [
        CompanyStatsOut(
            company_id=company_id,
            company_name=names.get(company_id, "No company"),
            total_participants=group.total_participants,
            summary=_summary_out(group.stats),
        )
        for company_id, group in groups.items()
    ]
    out.sort(key=lambda c: (c.company_id is None, c.company_name))
    return out


@router.get("/participants/{user_id}", response_model=ParticipantSummaryOut)
def get_participant_summary(user_id: UUID, store: StoreDep) -> ParticipantSummaryOut:
    evaluated = evaluate_all(store)
    if user_id not in evaluated.index.participants and not any(
        a.user_id == user_id for a in evaluated.index.snapshot.assignments
    ):
        raise HTTPException(status_code=404, detail="participant not found")

    s = summarize_participant(user_id, evaluated.result.statuses)
    return ParticipantSummaryOut(
        user_id=s.user_id,
        total_courses=s.total_courses,
        completed_courses=s.completed_courses,
        in_progress_courses=s.in_progress_courses,
        not_started_courses=s.not_started_courses,
        total_evaluations=s.total_evaluations,
        passed_evaluations=s.passed_evaluations,
        failed_evaluations=s.failed_evaluations,
        pending_evaluations=s.pending_evaluations,
        certificates_generated=s.certificates_generated,
        overall_progress=s.overall_progress,
        last_activity_at=s.last_activity_at,
    )
