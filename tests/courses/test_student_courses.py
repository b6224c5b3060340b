"""
E2E tests for the student learning area.
"""

import pytest

from app.courses.models import EnrollmentStatus, Lesson, LessonStatus, ProgressStatus
from tests.utils.factories import (
    create_course_factory,
    create_enrollment_factory,
    create_progress_factory,
)
from tests.utils.helpers import assert_error_response, set_access_token_cookie


def _lessons(db_session, course) -> list[Lesson]:
    return (
        db_session.query(Lesson)
        .filter(Lesson.course_id == course.id)
        .order_by(Lesson.sort_order)
        .all()
    )


class TestCourseDetail:
    async def test_should_return_outline_with_locks_and_resume(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=3)
        create_enrollment_factory(db_session, test_user, course)
        lessons = _lessons(db_session, course)
        create_progress_factory(db_session, test_user, lessons[0], ProgressStatus.COMPLETED)
        create_progress_factory(db_session, test_user, lessons[1], ProgressStatus.IN_PROGRESS)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}")

        assert response.status_code == 200, response.text
        data = response.json()
        assert [item["is_locked"] for item in data["lessons"]] == [False, False, True]
        assert data["auto_resume_lesson_id"] == str(lessons[1].id)
        assert data["progress"]["completed"] == 1
        assert data["progress"]["in_progress"] == 1
        assert data["total_lessons"] == 3

    async def test_should_hide_draft_lessons(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=2)
        create_enrollment_factory(db_session, test_user, course)
        draft = _lessons(db_session, course)[1]
        draft.status = LessonStatus.DRAFT
        db_session.commit()
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}")

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["lessons"]] == [
            str(_lessons(db_session, course)[0].id)
        ]

    async def test_should_reject_user_without_enrollment(
        self, test_client, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}")

        assert_error_response(response, 403, "NOT_ENROLLED")

    async def test_should_reject_suspended_enrollment(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course, EnrollmentStatus.SUSPENDED)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}")

        assert_error_response(response, 403, "NOT_ENROLLED")

    async def test_should_let_admin_preview_without_enrollment(
        self, test_client, test_admin_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        set_access_token_cookie(test_client, test_admin_token)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}")

        assert response.status_code == 200

    async def test_should_require_login(self, test_client, db_session):
        course = create_course_factory(db_session, lessons=1)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}")

        assert response.status_code == 401


class TestOpenLesson:
    async def test_should_start_first_lesson(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=2)
        create_enrollment_factory(db_session, test_user, course)
        lessons = _lessons(db_session, course)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(
            f"/api/v1/student/courses/{course.id}/lessons/{lessons[0].id}"
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["progress"]["status"] == ProgressStatus.IN_PROGRESS.value
        assert data["navigation"]["prev"] is None
        assert data["navigation"]["next"]["id"] == str(lessons[1].id)
        assert data["navigation"]["current_index"] == 1
        assert data["navigation"]["total"] == 2

    async def test_should_reject_locked_lesson(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=2)
        create_enrollment_factory(db_session, test_user, course)
        lessons = _lessons(db_session, course)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(
            f"/api/v1/student/courses/{course.id}/lessons/{lessons[1].id}"
        )

        assert_error_response(response, 403, "LESSON_LOCKED")

    async def test_should_reject_draft_lesson(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        lesson = _lessons(db_session, course)[0]
        lesson.status = LessonStatus.DRAFT
        db_session.commit()
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}"
        )

        assert_error_response(response, 403, "LESSON_DRAFT")

    async def test_should_return_404_for_lesson_of_other_course(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        other = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(
            f"/api/v1/student/courses/{course.id}/lessons/{_lessons(db_session, other)[0].id}"
        )

        assert_error_response(response, 404, "NOT_FOUND")


class TestUpdateProgress:
    async def test_should_complete_lesson_from_segments(
        self, test_client, test_user, test_user_token, db_session, redis_client
    ):
        course = create_course_factory(db_session, lessons=2)
        create_enrollment_factory(db_session, test_user, course)
        lesson = _lessons(db_session, course)[0]
        set_access_token_cookie(test_client, test_user_token)
        await test_client.get(f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}")

        response = await test_client.patch(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}/progress",
            json={
                "watched_segments": [{"start": 0, "end": 40}, {"start": 30, "end": 75}],
                "duration": 100,
                "last_position": 75,
            },
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == ProgressStatus.COMPLETED.value
        assert data["watch_time"] == 75
        assert data["watched_segments"] == [{"start": 0, "end": 75}]
        assert data["completed_at"] is not None
        redis_client.delete.assert_awaited()

    async def test_should_return_404_when_lesson_never_opened(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        lesson = _lessons(db_session, course)[0]
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.patch(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}/progress",
            json={"watch_time": 10},
        )

        assert response.status_code == 404

    async def test_should_reject_user_without_enrollment(
        self, test_client, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        lesson = _lessons(db_session, course)[0]
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.patch(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}/progress",
            json={"watch_time": 10},
        )

        assert response.status_code == 403

    async def test_should_reject_inverted_segment(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        lesson = _lessons(db_session, course)[0]
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.patch(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}/progress",
            json={"watched_segments": [{"start": 20, "end": 10}]},
        )

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "body",
        [
            '{"watched_segments": [{"start": 0, "end": 1e20}], "duration": 100}',
            '{"watched_segments": [{"start": 0, "end": Infinity}], "duration": 100}',
            '{"watched_segments": [{"start": NaN, "end": 10}]}',
            '{"duration": 10000000000}',
            '{"last_position": 10000000000}',
            '{"watch_time": 10000000000}',
        ],
    )
    async def test_should_reject_out_of_range_report(
        self, test_client, test_user, test_user_token, db_session, body
    ):
        course = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        lesson = _lessons(db_session, course)[0]
        set_access_token_cookie(test_client, test_user_token)
        await test_client.get(f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}")

        response = await test_client.patch(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}/progress",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422

    async def test_should_cut_segments_at_duration(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        lesson = _lessons(db_session, course)[0]
        set_access_token_cookie(test_client, test_user_token)
        await test_client.get(f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}")

        response = await test_client.patch(
            f"/api/v1/student/courses/{course.id}/lessons/{lesson.id}/progress",
            json={"watched_segments": [{"start": 0, "end": 80000}], "duration": 100},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["watched_segments"] == [{"start": 0, "end": 100}]
        assert data["watch_time"] == 100
        assert data["progress_percent"] == 100


class TestMyCourses:
    async def test_should_list_enrolled_courses(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=1)
        create_course_factory(db_session, lessons=1)
        create_enrollment_factory(db_session, test_user, course)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get("/api/v1/student/courses")

        assert response.status_code == 200
        assert [item["course_id"] for item in response.json()] == [str(course.id)]

    async def test_course_progress_endpoint(
        self, test_client, test_user, test_user_token, db_session
    ):
        course = create_course_factory(db_session, lessons=2)
        create_enrollment_factory(db_session, test_user, course)
        set_access_token_cookie(test_client, test_user_token)

        response = await test_client.get(f"/api/v1/student/courses/{course.id}/progress")

        assert response.status_code == 200
        assert response.json()["not_started"] == 2
