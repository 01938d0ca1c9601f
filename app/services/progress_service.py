"""Application-facing entry points around the pure engine.

Takes one snapshot from the store, runs the engine, and records metrics.
Routers call these functions; they never index snapshots themselves.
"""

from __future__ import annotations

import datetime
import logging
import time
from dataclasses import dataclass
from uuid import UUID

from app.core.config import SETTINGS, Settings
from app.core.metrics import PROGRESS_BATCH_DURATION, PROGRESS_REJECTED, PROGRESS_STATUSES
from app.models.assignment import Assignment
from app.models.progress import DerivedStatus
from app.repos.progress_store import ProgressStore
from app.services.progress_engine import (
    BatchResult,
    SnapshotIndex,
    compute_status,
    evaluate_index,
)

logger = logging.getLogger(__name__)


class AssignmentNotFoundError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class Evaluated:
    index: SnapshotIndex
    result: BatchResult


@dataclass(frozen=True, slots=True)
class EvaluatedAssignment:
    index: SnapshotIndex
    assignment: Assignment
    status: DerivedStatus


def now_ts() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def evaluate_all(
    store: ProgressStore,
    *,
    now: int | None = None,
    settings: Settings = SETTINGS,
) -> Evaluated:
    """Compute every assignment from a single consistent snapshot."""
    index = SnapshotIndex(store.snapshot())

    start = time.monotonic()
    result = evaluate_index(
        index,
        now=now if now is not None else now_ts(),
        inactivity_days=settings.inactivity_threshold_days,
        block_attendance_certificates=settings.block_attendance_certificates,
    )
    PROGRESS_BATCH_DURATION.observe(time.monotonic() - start)

    for status in result.statuses:
        PROGRESS_STATUSES.labels(status=status.status).inc()
    for failure in result.failures:
        PROGRESS_REJECTED.labels(reason=failure.kind).inc()

    logger.info(
        "Evaluated %d assignments (%d rejected)",
        len(result.statuses),
        len(result.failures),
    )
    return Evaluated(index=index, result=result)


def evaluate_assignment(
    store: ProgressStore,
    user_id: UUID,
    course_id: UUID,
    *,
    now: int | None = None,
    settings: Settings = SETTINGS,
) -> EvaluatedAssignment:
    """Compute one assignment.

    Raises:
        AssignmentNotFoundError: the user is not enrolled in the course.
        InvalidScoreError / InvalidAssignmentError: the assignment's own
            data is invalid.
    """
    index = SnapshotIndex(store.snapshot())
    assignment = next(
        (a for a in index.snapshot.assignments if a.key == (user_id, course_id)),
        None,
    )
    if assignment is None:
        raise AssignmentNotFoundError(f"user={user_id} course={course_id}")

    status = compute_status(
        index,
        assignment,
        now=now if now is not None else now_ts(),
        inactivity_days=settings.inactivity_threshold_days,
        block_attendance_certificates=settings.block_attendance_certificates,
    )
    PROGRESS_STATUSES.labels(status=status.status).inc()
    return EvaluatedAssignment(index=index, assignment=assignment, status=status)
