"""
Server-side exam scoring.

Pure functions over canonical ``Exam`` / ``Question`` records. Store documents
are normalized here, at the read boundary, so the scorer only ever sees one
shape regardless of which legacy field layout a question was authored with.
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from grader.exams.models import (
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    Exam,
    Question,
    ScoreResult,
)

# Checked in order; "answer" is the legacy layout.
CORRECT_ANSWER_FIELDS = ("correct_answer", "answer")


# ==================== NORMALIZATION ====================

def normalize_exam(doc: Dict[str, Any]) -> Exam:
    return Exam(
        exam_id=doc["exam_id"],
        course_id=doc["course_id"],
        passing_score=doc.get("passing_score") or DEFAULT_PASSING_SCORE,
    )


def normalize_question(doc: Dict[str, Any]) -> Question:
    correct_answer = None
    for field in CORRECT_ANSWER_FIELDS:
        value = doc.get(field)
        if value is not None:
            correct_answer = str(value)
            break

    return Question(
        question_id=str(doc["question_id"]),
        correct_answer=correct_answer,
        points=doc.get("points") or DEFAULT_QUESTION_POINTS,
    )


# ==================== SCORING ====================

def _normalize_answer(value: str) -> str:
    return value.strip().lower()


def is_correct(question: Question, submitted: Optional[str]) -> bool:
    """Exact match after trimming and lowercasing. No partial credit."""
    if not submitted or not question.correct_answer:
        return False
    return _normalize_answer(submitted) == _normalize_answer(question.correct_answer)


def calculate_percentage(score: float, total_points: float) -> float:
    # An exam made only of zero-point questions scores 0% instead of NaN
    if not total_points:
        return 0.0
    return score / total_points * 100


def score_submission(
    questions: Iterable[Question],
    answers: Mapping[str, Optional[str]],
    passing_score: float = DEFAULT_PASSING_SCORE,
) -> ScoreResult:
    """
    Grade a submission against stored questions.

    Every question contributes its points to the total whether or not it was
    answered; only exact (case/whitespace-insensitive) matches add to score.
    """
    score = 0
    total_points = 0

    for question in questions:
        total_points += question.points
        if is_correct(question, answers.get(question.question_id)):
            score += question.points

    percentage = calculate_percentage(score, total_points)

    return ScoreResult(
        score=score,
        total_points=total_points,
        percentage=percentage,
        passed=percentage >= passing_score,
    )
