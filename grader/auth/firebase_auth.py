"""
Firebase Authentication for exam submissions
Verifies Firebase ID tokens; the verified uid is the only trusted caller identity
"""

import logging
from typing import Optional

import firebase_admin
from fastapi import Header, Request
from firebase_admin import auth, credentials, exceptions

from grader.config import Config
from grader.exams.errors import GradingError, Unauthorized

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "exam-grader"


def init_firebase_app(config: Config) -> firebase_admin.App:
    """
    Initialize a named Firebase Admin app owned by the caller.

    Raises:
        RuntimeError: If credentials are invalid or Firebase init fails
    """
    try:
        if config.has_service_account:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": config.FIREBASE_PROJECT_ID,
                "private_key": config.FIREBASE_PRIVATE_KEY,
                "client_email": config.FIREBASE_CLIENT_EMAIL,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
        else:
            cred = credentials.ApplicationDefault()

        app = firebase_admin.initialize_app(
            cred,
            options={"projectId": config.FIREBASE_PROJECT_ID},
            name=FIREBASE_APP_NAME,
        )
    except Exception as e:
        raise RuntimeError(f"FATAL: Firebase initialization failed: {e}") from e

    logger.info("Firebase Admin SDK initialized")
    return app


def close_firebase_app(app: firebase_admin.App) -> None:
    firebase_admin.delete_app(app)


class FirebaseTokenVerifier:
    """Checks ID tokens against the identity provider's public keys"""

    def __init__(self, app: firebase_admin.App, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked

    def verify(self, token: str) -> str:
        """
        Returns:
            str: The verified user id (``uid`` claim)

        Raises:
            Unauthorized: If the token fails verification
            GradingError: If the identity provider lookup fails
        """
        try:
            decoded_token = auth.verify_id_token(token, app=self.app, check_revoked=self.check_revoked)
        except (ValueError, auth.InvalidIdTokenError, auth.CertificateFetchError,
                auth.UserDisabledError, auth.UserNotFoundError) as e:
            logger.warning(f"Rejected ID token: {e}")
            raise Unauthorized()
        except exceptions.FirebaseError as e:
            # Revocation lookup against the identity provider failed
            logger.exception("ID token verification error")
            raise GradingError(f"Token verification failed: {e}")

        user_id = decoded_token.get("uid") or decoded_token.get("sub")
        if not user_id:
            raise Unauthorized()
        return user_id


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Extract token from "Bearer <token>" or raise Unauthorized"""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized()

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthorized()
    return token


def get_current_user_id(request: Request, authorization: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency resolving the authenticated user id.

    Runs in the threadpool; verification may fetch the provider's public keys.
    """
    token = extract_bearer_token(authorization)
    verifier = request.app.state.token_verifier
    return verifier.verify(token)
