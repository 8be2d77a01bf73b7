import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from grader.auth.firebase_auth import get_current_user_id
from grader.exams.database import get_exam_result
from grader.exams.dependencies import get_db, get_grading_service
from grader.exams.errors import GradingError, NotFound
from grader.exams.grading_service import GradingService
from grader.exams.models import ExamResultResponse, GradeExamRequest, GradeExamResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Exams"])


@router.post("/grade", response_model=GradeExamResponse)
async def grade_exam(
    submission: GradeExamRequest,
    user_id: str = Depends(get_current_user_id),
    service: GradingService = Depends(get_grading_service)
):
    """Grade a submission server-side. Correct answers are never returned."""
    try:
        return await service.grade(user_id, submission)
    except GradingError:
        raise
    except Exception as e:
        logger.exception("Grading error")
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to grade exam."})


@router.get("/results/{result_id}", response_model=ExamResultResponse)
async def get_my_exam_result(
    result_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """The caller's own result. The stored answers stay server-side."""
    try:
        result = await get_exam_result(db, result_id)
    except Exception as e:
        logger.exception("Result lookup error")
        return JSONResponse(status_code=500, content={"error": str(e)})

    if not result or result.get("user_id") != user_id:
        raise NotFound("Result not found.")

    return ExamResultResponse(
        result_id=result["result_id"],
        exam_id=result["exam_id"],
        course_id=result["course_id"],
        score=result["score"],
        total_points=result["total_points"],
        percentage=result["percentage"],
        passed=result["passed"],
        submitted_at=result["submitted_at"],
        time_spent=result["time_spent"]
    )
