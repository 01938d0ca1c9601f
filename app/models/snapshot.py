from __future__ import annotations

from dataclasses import dataclass

from app.models.assessment import Evaluation, EvaluationAttempt
from app.models.assignment import Assignment
from app.models.attendance import AttendanceSignature
from app.models.course import Course, CourseModule, Lesson
from app.models.credential import Certificate
from app.models.participant import Company, Participant
from app.models.progress import LessonCompletion


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """A consistent, already-joined read of everything the engine needs.

    Built in one read so that attempts, signatures and certificates can't
    change between the gates that look at them.
    """

    assignments: tuple[Assignment, ...] = ()
    courses: tuple[Course, ...] = ()
    modules: tuple[CourseModule, ...] = ()
    lessons: tuple[Lesson, ...] = ()
    completions: tuple[LessonCompletion, ...] = ()
    evaluations: tuple[Evaluation, ...] = ()
    attempts: tuple[EvaluationAttempt, ...] = ()
    signatures: tuple[AttendanceSignature, ...] = ()
    certificates: tuple[Certificate, ...] = ()
    participants: tuple[Participant, ...] = ()
    companies: tuple[Company, ...] = ()
