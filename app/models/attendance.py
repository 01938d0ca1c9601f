from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class AttendanceSignature:
    """Attendance-list signature.

    Keyed either by an evaluation attempt (signature after passing) or by a
    course with no attempt (attendance-only activities).
    """

    id: UUID
    user_id: UUID
    signed_at: int
    course_id: UUID | None = None
    evaluation_attempt_id: UUID | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        signed_at: int,
        course_id: UUID | None = None,
        evaluation_attempt_id: UUID | None = None,
    ) -> AttendanceSignature:
        return AttendanceSignature(
            id=uuid4(),
            user_id=user_id,
            signed_at=signed_at,
            course_id=course_id,
            evaluation_attempt_id=evaluation_attempt_id,
        )
