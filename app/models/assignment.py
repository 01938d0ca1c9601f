from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.models.course import ActivityType


@dataclass(frozen=True, slots=True)
class Assignment:
    """One participant enrolled in one course.  Unique per (user_id, course_id)."""

    user_id: UUID
    course_id: UUID
    assigned_at: int
    activity_type: ActivityType = "full_course"
    last_activity_at: int | None = None
    started_at: int | None = None
    completed_at: int | None = None

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.user_id, self.course_id)
