"""Sequential lesson unlocking and the resume target."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from uuid import UUID

from app.courses.models import Lesson, LessonProgress, ProgressStatus


@dataclass
class LessonLockState:
    lesson: Lesson
    progress: LessonProgress | None
    is_locked: bool

    @property
    def status(self) -> ProgressStatus:
        return self.progress.status if self.progress else ProgressStatus.NOT_STARTED


def sort_lessons(lessons: Sequence[Lesson]) -> list[Lesson]:
    return sorted(lessons, key=lambda lesson: (lesson.sort_order, lesson.created_at))


def resolve_locks(
    lessons: Sequence[Lesson], progress_map: Mapping[UUID, LessonProgress]
) -> list[LessonLockState]:
    """
    Lock every lesson whose predecessor is not COMPLETED.

    The first lesson is always open. A predecessor without a progress row
    counts as not completed.
    """
    ordered = sort_lessons(lessons)
    states: list[LessonLockState] = []
    for index, lesson in enumerate(ordered):
        locked = False
        if index > 0:
            prev = progress_map.get(ordered[index - 1].id)
            locked = prev is None or prev.status != ProgressStatus.COMPLETED
        states.append(LessonLockState(lesson, progress_map.get(lesson.id), locked))
    return states


def resume_lesson_id(states: Sequence[LessonLockState]) -> UUID | None:
    """
    Pick where the student should continue.

    First unlocked IN_PROGRESS lesson, else first unlocked NOT_STARTED lesson,
    else the first lesson; None only for an empty course.
    """
    unlocked = [s for s in states if not s.is_locked]
    for wanted in (ProgressStatus.IN_PROGRESS, ProgressStatus.NOT_STARTED):
        for state in unlocked:
            if state.status == wanted:
                return state.lesson.id
    return states[0].lesson.id if states else None


def is_lesson_locked(
    lessons: Sequence[Lesson], progress_map: Mapping[UUID, LessonProgress], lesson_id: UUID
) -> bool:
    """Lock flag of one lesson; an id outside ``lessons`` is never locked."""
    for state in resolve_locks(lessons, progress_map):
        if state.lesson.id == lesson_id:
            return state.is_locked
    return False
