"""
Exam Grading Service - Main Application
Server-side exam grading and certificate issuance
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from grader.auth.firebase_auth import FirebaseTokenVerifier, close_firebase_app, init_firebase_app
from grader.config import Config
from grader.exams.certificate_router import router as certificate_router
from grader.exams.database import create_indexes
from grader.exams.errors import GradingError, Unauthorized
from grader.exams.grading_router import router as grading_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the store client and identity app unless they were injected"""
    config: Config = app.state.config
    client = None
    firebase_app = None

    if app.state.db is None:
        client = AsyncIOMotorClient(
            config.MONGO_URL,
            serverSelectionTimeoutMS=config.STORE_TIMEOUT_MS,
            socketTimeoutMS=config.STORE_TIMEOUT_MS,
        )
        app.state.db = client[config.MONGO_DB_NAME]

    if app.state.token_verifier is None:
        firebase_app = init_firebase_app(config)
        app.state.token_verifier = FirebaseTokenVerifier(firebase_app, check_revoked=config.CHECK_REVOKED_TOKENS)

    await create_indexes(app.state.db)
    logger.info("Exam grading service started")

    try:
        yield
    finally:
        if client is not None:
            client.close()
        if firebase_app is not None:
            close_firebase_app(firebase_app)
        logger.info("Exam grading service stopped")


def create_app(
    config: Optional[Config] = None,
    db: Optional[AsyncIOMotorDatabase] = None,
    token_verifier=None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    config = config or Config()
    configure_logging(config.LOG_LEVEL)

    app = FastAPI(title="Exam Grading Service", lifespan=lifespan)
    app.state.config = config
    app.state.db = db
    app.state.token_verifier = token_verifier
    app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(GradingError)
    async def grading_error_handler(request: Request, exc: GradingError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(grading_router, prefix="/exams")
    app.include_router(certificate_router, prefix="/certificates")

    @app.get("/health")
    async def health():
        try:
            await app.state.db.command("ping")
        except Exception as e:
            logger.exception("Health check failed")
            return JSONResponse(status_code=503, content={"status": "down", "error": str(e)})
        return {"status": "ok"}

    return app
