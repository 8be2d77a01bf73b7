from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PASSING_SCORE = 50
DEFAULT_QUESTION_POINTS = 1
DEFAULT_COURSE_NAME = "Course"

# ==================== CANONICAL STORE RECORDS ====================


@dataclass(frozen=True)
class Exam:
    exam_id: str
    course_id: str
    passing_score: float = DEFAULT_PASSING_SCORE


@dataclass(frozen=True)
class Question:
    question_id: str
    correct_answer: Optional[str]
    points: float = DEFAULT_QUESTION_POINTS


@dataclass(frozen=True)
class ScoreResult:
    score: float
    total_points: float
    percentage: float
    passed: bool


# ==================== REQUEST / RESPONSE MODELS ====================


class GradeExamRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam_id: str = Field(..., alias="examId", min_length=1)
    course_id: str = Field(..., alias="courseId", min_length=1)
    answers: Dict[str, Optional[str]] = Field(default_factory=dict)
    start_time: float = Field(..., alias="startTime")  # epoch milliseconds


class GradeExamResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: float
    total_points: float = Field(..., alias="totalPoints")
    percentage: float
    passed: bool
    certificate_issued: bool = Field(..., alias="certificateIssued")
    result_id: str = Field(..., alias="resultId")


class ExamResultResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    result_id: str = Field(..., alias="resultId")
    exam_id: str = Field(..., alias="examId")
    course_id: str = Field(..., alias="courseId")
    score: float
    total_points: float = Field(..., alias="totalPoints")
    percentage: float
    passed: bool
    submitted_at: datetime = Field(..., alias="submittedAt")
    time_spent: int = Field(..., alias="timeSpent")


class CertificateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    certificate_id: str = Field(..., alias="certificateId")
    course_id: str = Field(..., alias="courseId")
    course_name: str = Field(..., alias="courseName")
    instructor_name: str = Field(..., alias="instructorName")
    issue_date: datetime = Field(..., alias="issueDate")
    metadata: Dict[str, Any] = Field(default_factory=dict)
