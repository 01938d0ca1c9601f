"""Progress data store: the loader side of the engine.

The engine never queries anything.  It gets one ProgressSnapshot, built
here in a single locked read, so attempts can't be appended between the
evaluation gate and the signature gate looking at them.

Write-side rules enforced by the store:
  - one assignment per (user, course); unenrolling removes it
  - lesson completions upsert per (user, lesson) and bump the
    assignment's last_activity_at (and started_at the first time)
  - attempts are append-only, numbered 1..n per (user, evaluation)
  - one signature per qualifying event: a passed attempt, or a course
    the user is on as an attendance list
  - certificates upsert per (user, course)
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.assessment import Evaluation, EvaluationAttempt
from app.models.assignment import Assignment
from app.models.attendance import AttendanceSignature
from app.models.course import Course, CourseModule, Lesson
from app.models.credential import Certificate
from app.models.participant import Company, Participant
from app.models.progress import LessonCompletion
from app.models.snapshot import ProgressSnapshot
from app.services.evaluation_gate import is_passing


class AttemptNotAllowedError(Exception):
    """The participant already passed or has no attempts left."""


class ProgressStore(Protocol):
    def snapshot(self) -> ProgressSnapshot: ...
    def get_assignment(self, user_id: UUID, course_id: UUID) -> Assignment | None: ...
    def get_course(self, course_id: UUID) -> Course | None: ...
    def get_evaluation(self, evaluation_id: UUID) -> Evaluation | None: ...
    def add_company(self, company: Company) -> None: ...
    def add_participant(self, participant: Participant) -> None: ...
    def add_course(self, course: Course) -> None: ...
    def add_module(self, module: CourseModule) -> None: ...
    def add_lesson(self, lesson: Lesson) -> None: ...
    def add_evaluation(self, evaluation: Evaluation) -> None: ...
    def add_assignment(self, assignment: Assignment) -> None: ...
    def remove_assignment(self, user_id: UUID, course_id: UUID) -> None: ...
    def record_lesson_completion(
        self, user_id: UUID, lesson_id: UUID, completed: bool, at: int
    ) -> LessonCompletion: ...
    def record_attempt(
        self, user_id: UUID, evaluation_id: UUID, score: int, at: int
    ) -> EvaluationAttempt: ...
    def add_signature(self, signature: AttendanceSignature) -> None: ...
    def upsert_certificate(self, certificate: Certificate) -> Certificate: ...


class InMemoryProgressStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._companies: dict[UUID, Company] = {}
        self._participants: dict[UUID, Participant] = {}
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._lessons: dict[UUID, Lesson] = {}
        self._evaluations: dict[UUID, Evaluation] = {}
        self._assignments: dict[tuple[UUID, UUID], Assignment] = {}
        self._completions: dict[tuple[UUID, UUID], LessonCompletion] = {}
        self._attempts: list[EvaluationAttempt] = []
        self._signatures: list[AttendanceSignature] = []
        self._certificates: dict[tuple[UUID, UUID], Certificate] = {}

    def clear(self) -> None:
        with self._lock:
            for store in (
                self._companies,
                self._participants,
                self._courses,
                self._modules,
                self._lessons,
                self._evaluations,
                self._assignments,
                self._completions,
                self._certificates,
            ):
                store.clear()
            self._attempts.clear()
            self._signatures.clear()

    # ---- reads ----

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                assignments=tuple(self._assignments.values()),
                courses=tuple(self._courses.values()),
                modules=tuple(self._modules.values()),
                lessons=tuple(self._lessons.values()),
                completions=tuple(self._completions.values()),
                evaluations=tuple(self._evaluations.values()),
                attempts=tuple(self._attempts),
                signatures=tuple(self._signatures),
                certificates=tuple(self._certificates.values()),
                participants=tuple(self._participants.values()),
                companies=tuple(self._companies.values()),
            )

    def get_assignment(self, user_id: UUID, course_id: UUID) -> Assignment | None:
        return self._assignments.get((user_id, course_id))

    def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    def get_evaluation(self, evaluation_id: UUID) -> Evaluation | None:
        return self._evaluations.get(evaluation_id)

    # ---- catalog writes ----

    def add_company(self, company: Company) -> None:
        with self._lock:
            self._companies[company.id] = company

    def add_participant(self, participant: Participant) -> None:
        with self._lock:
            if any(p.email == participant.email for p in self._participants.values()):
                raise ValueError("email already exists")
            self._participants[participant.id] = participant

    def add_course(self, course: Course) -> None:
        with self._lock:
            self._courses[course.id] = course

    def add_module(self, module: CourseModule) -> None:
        with self._lock:
            if module.course_id not in self._courses:
                raise KeyError("course not found")
            self._modules[module.id] = module

    def add_lesson(self, lesson: Lesson) -> None:
        with self._lock:
            if lesson.module_id not in self._modules:
                raise KeyError("module not found")
            self._lessons[lesson.id] = lesson

    def add_evaluation(self, evaluation: Evaluation) -> None:
        with self._lock:
            if evaluation.is_active and any(
                e.is_active and e.course_id == evaluation.course_id
                for e in self._evaluations.values()
            ):
                raise ValueError("course already has an active evaluation")
            self._evaluations[evaluation.id] = evaluation

    def deactivate_evaluation(self, evaluation_id: UUID) -> None:
        with self._lock:
            evaluation = self._evaluations.get(evaluation_id)
            if evaluation is None:
                raise KeyError("evaluation not found")
            self._evaluations[evaluation_id] = replace(evaluation, is_active=False)

    # ---- enrollment ----

    def add_assignment(self, assignment: Assignment) -> None:
        with self._lock:
            if assignment.key in self._assignments:
                raise ValueError("already enrolled")
            self._assignments[assignment.key] = assignment

    def remove_assignment(self, user_id: UUID, course_id: UUID) -> None:
        with self._lock:
            if self._assignments.pop((user_id, course_id), None) is None:
                raise KeyError("assignment not found")

    # ---- activity ----

    def record_lesson_completion(
        self, user_id: UUID, lesson_id: UUID, completed: bool, at: int
    ) -> LessonCompletion:
        with self._lock:
            lesson = self._lessons.get(lesson_id)
            if lesson is None:
                raise KeyError("lesson not found")

            completion = LessonCompletion(
                user_id=user_id,
                lesson_id=lesson_id,
                completed=completed,
                completed_at=at if completed else None,
            )
            self._completions[(user_id, lesson_id)] = completion

            course_id = self._modules[lesson.module_id].course_id
            assignment = self._assignments.get((user_id, course_id))
            if assignment is not None:
                self._assignments[assignment.key] = replace(
                    assignment,
                    last_activity_at=at,
                    started_at=assignment.started_at if assignment.started_at is not None else at,
                )
            return completion

    def record_attempt(
        self, user_id: UUID, evaluation_id: UUID, score: int, at: int
    ) -> EvaluationAttempt:
        """Append the next attempt; ``passed`` follows the evaluation's passing score.

        Raises:
            KeyError: unknown evaluation.
            InvalidScoreError: score or passing score outside 0-100.
            AttemptNotAllowedError: already passed, or attempts exhausted.
        """
        with self._lock:
            evaluation = self._evaluations.get(evaluation_id)
            if evaluation is None:
                raise KeyError("evaluation not found")

            passed = is_passing(score, evaluation)
            previous = [
                a
                for a in self._attempts
                if a.user_id == user_id and a.evaluation_id == evaluation_id
            ]
            if any(a.passed for a in previous):
                raise AttemptNotAllowedError("evaluation already passed")
            if len(previous) >= evaluation.max_attempts:
                raise AttemptNotAllowedError("no attempts remaining")

            attempt = EvaluationAttempt.new(
                user_id=user_id,
                evaluation_id=evaluation_id,
                attempt_number=len(previous) + 1,
                score=score,
                passed=passed,
                completed_at=at,
            )
            self._attempts.append(attempt)
            return attempt

    def add_signature(self, signature: AttendanceSignature) -> None:
        """Record a signature for a passed attempt or an attendance-list course.

        Raises:
            KeyError: the attempt does not exist or belongs to someone else.
            ValueError: wrong target shape, a failed attempt, a course the
                user is not on as an attendance list, or already signed.
        """
        if (signature.course_id is None) == (signature.evaluation_attempt_id is None):
            raise ValueError("signature needs exactly one of course_id or evaluation_attempt_id")

        with self._lock:
            if signature.evaluation_attempt_id is not None:
                attempt = next(
                    (a for a in self._attempts if a.id == signature.evaluation_attempt_id),
                    None,
                )
                if attempt is None or attempt.user_id != signature.user_id:
                    raise KeyError("attempt not found")
                if not attempt.passed:
                    raise ValueError("only a passed attempt can be signed")
            else:
                assignment = self._assignments.get((signature.user_id, signature.course_id))
                if assignment is None or assignment.activity_type != "attendance_only":
                    raise ValueError("no attendance list assignment for this course")

            for existing in self._signatures:
                if (
                    existing.user_id == signature.user_id
                    and existing.course_id == signature.course_id
                    and existing.evaluation_attempt_id == signature.evaluation_attempt_id
                ):
                    raise ValueError("already signed")
            self._signatures.append(signature)

    def upsert_certificate(self, certificate: Certificate) -> Certificate:
        """Insert, or overwrite the existing row for (user, course) keeping its id."""
        key = (certificate.user_id, certificate.course_id)
        with self._lock:
            existing = self._certificates.get(key)
            if existing is not None:
                certificate = replace(
                    certificate, id=existing.id, created_at=existing.created_at
                )
            self._certificates[key] = certificate
            return certificate
