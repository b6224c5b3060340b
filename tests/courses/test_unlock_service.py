import uuid
from datetime import datetime

from app.courses.models import Lesson, LessonProgress, ProgressStatus
from app.courses.services.unlock_service import (
    is_lesson_locked,
    resolve_locks,
    resume_lesson_id,
)

CREATED = datetime(2026, 1, 1)


def _lessons(count: int) -> list[Lesson]:
    course_id = uuid.uuid4()
    return [
        Lesson(
            id=uuid.uuid4(),
            course_id=course_id,
            title=f"Lesson {i}",
            sort_order=i,
            created_at=CREATED,
        )
        for i in range(count)
    ]


def _progress(lesson: Lesson, status: ProgressStatus) -> LessonProgress:
    return LessonProgress(lesson_id=lesson.id, course_id=lesson.course_id, status=status)


class TestResolveLocks:
    def test_should_lock_lessons_after_unfinished_predecessor(self):
        lessons = _lessons(3)
        progress_map = {
            lessons[0].id: _progress(lessons[0], ProgressStatus.COMPLETED),
            lessons[1].id: _progress(lessons[1], ProgressStatus.IN_PROGRESS),
            lessons[2].id: _progress(lessons[2], ProgressStatus.NOT_STARTED),
        }

        states = resolve_locks(lessons, progress_map)

        assert [s.is_locked for s in states] == [False, False, True]
        assert resume_lesson_id(states) == lessons[1].id

    def test_should_open_only_first_lesson_without_progress(self):
        lessons = _lessons(3)

        states = resolve_locks(lessons, {})

        assert [s.is_locked for s in states] == [False, True, True]
        assert resume_lesson_id(states) == lessons[0].id

    def test_should_order_by_sort_order(self):
        lessons = _lessons(3)
        shuffled = [lessons[2], lessons[0], lessons[1]]

        states = resolve_locks(shuffled, {})

        assert [s.lesson.id for s in states] == [lesson.id for lesson in lessons]

    def test_should_resume_first_lesson_when_all_completed(self):
        lessons = _lessons(2)
        progress_map = {
            lesson.id: _progress(lesson, ProgressStatus.COMPLETED) for lesson in lessons
        }

        states = resolve_locks(lessons, progress_map)

        assert resume_lesson_id(states) == lessons[0].id

    def test_should_return_none_for_empty_course(self):
        assert resume_lesson_id(resolve_locks([], {})) is None

    def test_is_lesson_locked(self):
        lessons = _lessons(2)

        assert is_lesson_locked(lessons, {}, lessons[0].id) is False
        assert is_lesson_locked(lessons, {}, lessons[1].id) is True
