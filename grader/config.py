"""
Exam Grading Service Configuration
Validated settings built from environment variables
"""

import os
from typing import List, Optional


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Validated configuration - fails fast on missing vars"""

    def __init__(self, env: Optional[dict] = None):
        self._env = os.environ if env is None else env

        # Document store
        self.MONGO_URL = self._require_env("MONGO_URL")
        self.MONGO_DB_NAME = self._env.get("MONGO_DB_NAME") or "exam_platform"
        self.STORE_TIMEOUT_MS = int(self._env.get("STORE_TIMEOUT_MS") or 30000)

        # Identity provider
        self.FIREBASE_PROJECT_ID = self._require_env("FIREBASE_PROJECT_ID")
        private_key = self._env.get("FIREBASE_PRIVATE_KEY")
        self.FIREBASE_PRIVATE_KEY = private_key.replace("\\n", "\n") if private_key else None
        self.FIREBASE_CLIENT_EMAIL = self._env.get("FIREBASE_CLIENT_EMAIL")
        self.CHECK_REVOKED_TOKENS = _as_bool(self._env.get("CHECK_REVOKED_TOKENS"))

        # Grading / certificates
        self.REQUIRE_ENROLLMENT = _as_bool(self._env.get("REQUIRE_ENROLLMENT"))
        self.CERTIFICATE_ISSUER = self._env.get("CERTIFICATE_ISSUER") or "eXamplify Platform"
        self.CERTIFICATE_INSTRUCTOR = self._env.get("CERTIFICATE_INSTRUCTOR") or "eXamplify Instructor"
        self.CERTIFICATE_SCHEMA_VERSION = self._env.get("CERTIFICATE_SCHEMA_VERSION") or "1.0"

        # HTTP
        self.CORS_ORIGINS = self._parse_origins(self._env.get("CORS_ORIGINS") or "*")
        self.LOG_LEVEL = (self._env.get("LOG_LEVEL") or "INFO").upper()

    def _require_env(self, key: str) -> str:
        """Get required environment variable or crash"""
        value = self._env.get(key)
        if not value:
            raise RuntimeError(f"FATAL: Missing required environment variable: {key}")
        return value

    @staticmethod
    def _parse_origins(origins_str: str) -> List[str]:
        """Parse comma-separated CORS origins"""
        origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]
        return origins or ["*"]

    @property
    def has_service_account(self) -> bool:
        return bool(self.FIREBASE_PRIVATE_KEY and self.FIREBASE_CLIENT_EMAIL)
