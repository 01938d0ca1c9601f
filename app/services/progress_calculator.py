"""Lesson-based progress for one (user, course) assignment.

Progress is binary per lesson: a lesson counts only when the user's
completion record for it says ``completed=True``.  There is no partial
credit for lessons that were opened but not finished.

Courses with no modules or no lessons (topics, attendance lists, or a
course that is still being authored) are not an error; they simply
yield 0%.  The status resolver special-cases those activity types
instead of relying on this number.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from app.models.course import CourseModule, Lesson
from app.models.progress import LessonCompletion, LessonProgress


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer percentage-style rounding; 12.5 -> 13, unlike ``round()``."""
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def completed_lesson_ids(
    completions: Iterable[LessonCompletion],
) -> frozenset[UUID]:
    return frozenset(c.lesson_id for c in completions if c.completed)


def percent_complete(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    completed = min(max(completed, 0), total)
    return round_half_up(100 * completed, total)


def calculate_progress(
    modules: Sequence[CourseModule],
    lessons: Sequence[Lesson],
    completions: Iterable[LessonCompletion],
) -> LessonProgress:
    """Count completed lessons across every module of one course.

    ``lessons`` may include lessons of other courses; only lessons whose
    module belongs to ``modules`` are counted.  ``completions`` are the
    user's completion records, in any order.
    """
    module_ids = {m.id for m in modules}
    course_lessons = [lesson for lesson in lessons if lesson.module_id in module_ids]
    done = completed_lesson_ids(completions)

    completed_count = 0
    lessons_per_module: dict[UUID, int] = {}
    done_per_module: dict[UUID, int] = {}
    for lesson in course_lessons:
        lessons_per_module[lesson.module_id] = lessons_per_module.get(lesson.module_id, 0) + 1
        if lesson.id in done:
            completed_count += 1
            done_per_module[lesson.module_id] = done_per_module.get(lesson.module_id, 0) + 1

    # A module with no lessons is never "completed".
    completed_modules = sum(
        1
        for module_id, total in lessons_per_module.items()
        if done_per_module.get(module_id, 0) == total
    )

    total = len(course_lessons)
    return LessonProgress(
        completed_lesson_count=completed_count,
        total_lesson_count=total,
        progress_percent=percent_complete(completed_count, total),
        completed_module_count=completed_modules,
        total_module_count=len(module_ids),
    )
