from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

ActivityType = Literal["full_course", "topic", "attendance_only"]
ACTIVITY_TYPES: tuple[ActivityType, ...] = ("full_course", "topic", "attendance_only")


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    requires_evaluation: bool = False

    @staticmethod
    def new(*, title: str, requires_evaluation: bool = False) -> Course:
        return Course(id=uuid4(), title=title, requires_evaluation=requires_evaluation)


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    position: int
    title: str

    @staticmethod
    def new(*, course_id: UUID, position: int, title: str) -> CourseModule:
        return CourseModule(
            id=uuid4(), course_id=course_id, position=position, title=title
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    module_id: UUID
    position: int
    title: str

    @staticmethod
    def new(*, module_id: UUID, position: int, title: str) -> Lesson:
        return Lesson(id=uuid4(), module_id=module_id, position=position, title=title)
