from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    """Issued completion certificate.  At most one per (user_id, course_id)."""

    id: UUID
    user_id: UUID
    course_id: UUID
    completion_date: int
    created_at: int
    certificate_url: str | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        completion_date: int,
        created_at: int,
        certificate_url: str | None = None,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            completion_date=completion_date,
            created_at=created_at,
            certificate_url=certificate_url,
        )
