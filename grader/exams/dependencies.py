from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from grader.exams.grading_service import GradingService

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return request.app.state.db


async def get_grading_service(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> GradingService:
    return GradingService(db, request.app.state.config, clock=request.app.state.clock)
