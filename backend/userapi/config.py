"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent
DEFAULT_DB_URL = f"sqlite:///{BASE / 'app.db'}"


class Settings:
    ENV: str
    DATABASE_URL: str
    DB_ECHO: bool
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_ISSUER: str
    JWT_AUDIENCE: str
    JWT_JWKS_URL: str
    JWT_EXPIRE_MINUTES: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", DEFAULT_DB_URL)
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        # empty issuer/audience means the claim is not checked
        self.JWT_ISSUER = os.getenv("JWT_ISSUER", "")
        self.JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "")
        self.JWT_JWKS_URL = os.getenv("JWT_JWKS_URL", "")
        self.JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if (
            self.ENV != "dev"
            and not self.ALLOW_INSECURE_JWT
            and not self.JWT_JWKS_URL
            and self.JWT_SECRET == "change_me_for_prod"
        ):
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_EXPIRE_MINUTES <= 0:
            raise RuntimeError("JWT_EXPIRE_MINUTES must be positive")


settings = Settings()
