from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError
from typing import List, Optional, Dict, Any
import logging
import secrets
import string
import uuid

from grader.exams.models import Exam, Question
from grader.exams.scoring import normalize_exam, normalize_question

logger = logging.getLogger(__name__)

CERTIFICATE_ID_ALPHABET = string.ascii_uppercase + string.digits
CERTIFICATE_ID_LENGTH = 9


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes the grading flow relies on"""
    await db.exams.create_index([("course_id", ASCENDING), ("exam_id", ASCENDING)], unique=True)
    await db.exam_questions.create_index([("course_id", ASCENDING), ("exam_id", ASCENDING)])

    await db.exam_results.create_index("result_id", unique=True)
    await db.exam_results.create_index([("user_id", ASCENDING), ("exam_id", ASCENDING)])

    # At most one certificate per (user, course)
    await db.certificates.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True)
    await db.certificates.create_index("certificate_id", unique=True)

    await db.enrollments.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)])

    logger.info("Exam grading indexes created")


# ==================== COURSES / ENROLLMENTS ====================

async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> Optional[dict]:
    """Get course by ID"""
    return await db.courses.find_one({"course_id": course_id})


async def has_active_enrollment(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> bool:
    enrollment = await db.enrollments.find_one({
        "user_id": user_id,
        "course_id": course_id,
        "status": "active"
    })
    return enrollment is not None


# ==================== EXAMS / QUESTIONS ====================

async def get_exam(db: AsyncIOMotorDatabase, course_id: str, exam_id: str) -> Optional[Exam]:
    doc = await db.exams.find_one({"course_id": course_id, "exam_id": exam_id})
    if not doc:
        return None
    return normalize_exam(doc)


async def get_exam_questions(db: AsyncIOMotorDatabase, course_id: str, exam_id: str) -> List[Question]:
    """Load every question of an exam, correct answers included (server-side only)"""
    cursor = db.exam_questions.find({"course_id": course_id, "exam_id": exam_id})
    docs = await cursor.to_list(length=None)
    return [normalize_question(doc) for doc in docs]


# ==================== EXAM RESULTS ====================

async def create_exam_result(db: AsyncIOMotorDatabase, result_data: dict) -> str:
    """Append an exam result record. Never updated afterwards."""
    result_id = f"RES_{uuid.uuid4().hex[:12].upper()}"

    result = {
        "result_id": result_id,
        "user_id": result_data["user_id"],
        "exam_id": result_data["exam_id"],
        "course_id": result_data["course_id"],
        "score": result_data["score"],
        "total_points": result_data["total_points"],
        "percentage": result_data["percentage"],
        "passed": result_data["passed"],
        "answers": result_data["answers"],
        "submitted_at": result_data["submitted_at"],
        "time_spent": result_data["time_spent"]
    }

    await db.exam_results.insert_one(result)
    return result_id


async def get_exam_result(db: AsyncIOMotorDatabase, result_id: str) -> Optional[dict]:
    return await db.exam_results.find_one({"result_id": result_id})


# ==================== CERTIFICATES ====================

def generate_certificate_id() -> str:
    """Human-readable id: CERT- followed by 9 uppercase alphanumerics"""
    suffix = "".join(secrets.choice(CERTIFICATE_ID_ALPHABET) for _ in range(CERTIFICATE_ID_LENGTH))
    return f"CERT-{suffix}"


def certificate_key(user_id: str, course_id: str) -> str:
    """Deterministic storage key; the store's unique _id enforces one per pair"""
    return f"{user_id}_{course_id}"


async def find_certificate(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> Optional[dict]:
    return await db.certificates.find_one({"user_id": user_id, "course_id": course_id})


async def insert_certificate(db: AsyncIOMotorDatabase, certificate_data: dict) -> bool:
    """
    Insert a certificate under its deterministic key.

    Returns False when a certificate for the same (user, course) already
    exists, including one written by a concurrent request between our
    existence check and this insert.
    """
    user_id = certificate_data["user_id"]
    course_id = certificate_data["course_id"]

    certificate = {
        "_id": certificate_key(user_id, course_id),
        "user_id": user_id,
        "course_id": course_id,
        "course_name": certificate_data["course_name"],
        "instructor_name": certificate_data["instructor_name"],
        "issue_date": certificate_data["issue_date"],
        "certificate_id": certificate_data["certificate_id"],
        "metadata": certificate_data["metadata"]
    }

    try:
        await db.certificates.insert_one(certificate)
    except DuplicateKeyError:
        if await find_certificate(db, user_id, course_id) is None:
            # Collision on certificate_id rather than on the (user, course) key
            raise
        logger.warning(f"Concurrent certificate insert lost for user {user_id}, course {course_id}")
        return False
    return True


async def get_certificate_by_public_id(db: AsyncIOMotorDatabase, certificate_id: str) -> Optional[dict]:
    return await db.certificates.find_one({"certificate_id": certificate_id})


async def list_user_certificates(db: AsyncIOMotorDatabase, user_id: str) -> List[Dict[str, Any]]:
    """Get all certificates held by a user, newest first"""
    cursor = db.certificates.find({"user_id": user_id}).sort("issue_date", DESCENDING)
    return await cursor.to_list(length=None)
