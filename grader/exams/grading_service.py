"""
Exam grading and certificate issuance.

Order per request: (enrollment guard) -> load exam -> load questions ->
score -> persist result -> issue certificate if passed. Correct answers are
read from the store only and never leave the server.
"""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from grader.config import Config
from grader.exams import database
from grader.exams.errors import EnrollmentRequired, NotFound
from grader.exams.models import DEFAULT_COURSE_NAME, GradeExamRequest, GradeExamResponse, ScoreResult
from grader.exams.scoring import score_submission

logger = logging.getLogger(__name__)


class GradingService:
    """Server-authoritative grading over an injected database handle"""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        config: Config,
        clock: Callable[[], float] = time.time,
    ):
        self.db = db
        self.config = config
        self.clock = clock

    async def grade(self, user_id: str, submission: GradeExamRequest) -> GradeExamResponse:
        course_id = submission.course_id
        exam_id = submission.exam_id

        if self.config.REQUIRE_ENROLLMENT:
            if not await database.has_active_enrollment(self.db, user_id, course_id):
                raise EnrollmentRequired()

        exam = await database.get_exam(self.db, course_id, exam_id)
        if exam is None:
            raise NotFound("Exam not found.")

        questions = await database.get_exam_questions(self.db, course_id, exam_id)
        if not questions:
            raise NotFound("No questions found for this exam.")

        result = score_submission(questions, submission.answers, exam.passing_score)

        result_id = await self._persist_result(user_id, submission, result)

        certificate_issued = False
        if result.passed:
            certificate_issued = await self.issue_certificate(user_id, course_id, result.percentage)

        return GradeExamResponse(
            score=result.score,
            total_points=result.total_points,
            percentage=result.percentage,
            passed=result.passed,
            certificate_issued=certificate_issued,
            result_id=result_id,
        )

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), timezone.utc)

    def time_spent(self, start_time_ms: float) -> int:
        """Whole seconds between the client's start time and server now"""
        return math.floor((self.clock() * 1000 - start_time_ms) / 1000)

    async def _persist_result(self, user_id: str, submission: GradeExamRequest, result: ScoreResult) -> str:
        return await database.create_exam_result(self.db, {
            "user_id": user_id,
            "exam_id": submission.exam_id,
            "course_id": submission.course_id,
            "score": result.score,
            "total_points": result.total_points,
            "percentage": result.percentage,
            "passed": result.passed,
            "answers": dict(submission.answers),
            "submitted_at": self.now(),
            "time_spent": self.time_spent(submission.start_time),
        })

    async def issue_certificate(self, user_id: str, course_id: str, percentage: float) -> bool:
        """
        Issue the (user, course) certificate if none exists yet.

        Best effort: the exam result is already stored, so any failure here is
        logged and reported as ``False`` instead of failing the request.
        """
        try:
            existing = await database.find_certificate(self.db, user_id, course_id)
            if existing:
                logger.info(f"Certificate already exists for user {user_id}, course {course_id}")
                return False

            course = await database.get_course(self.db, course_id)
            course_name = _course_name(course)

            issued = await database.insert_certificate(self.db, {
                "user_id": user_id,
                "course_id": course_id,
                "course_name": course_name,
                "instructor_name": self.config.CERTIFICATE_INSTRUCTOR,
                "issue_date": self.now(),
                "certificate_id": database.generate_certificate_id(),
                "metadata": {
                    "version": self.config.CERTIFICATE_SCHEMA_VERSION,
                    "issuer": self.config.CERTIFICATE_ISSUER,
                    "exam_score": percentage,
                },
            })
        except Exception:
            logger.exception(f"Certificate issuance error for user {user_id}, course {course_id}")
            return False

        if issued:
            logger.info(f"Certificate issued for user {user_id}, course {course_id}")
        return issued


def _course_name(course: Optional[Mapping]) -> str:
    if not course:
        return DEFAULT_COURSE_NAME
    return course.get("title") or course.get("name") or DEFAULT_COURSE_NAME
