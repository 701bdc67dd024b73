# taskify/config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    session_secret: str = ""
    client_url: str = "http://localhost:5173"
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_callback_url: Optional[str] = None
    email_host: Optional[str] = None
    email_port: int = 587
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_secure: bool = False
    email_from: str = "noreply@taskify.com"
    environment: str = "development"
    log_level: str = "INFO"
    bcrypt_rounds: int = 10

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.email_host and self.email_user and self.email_pass)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL is not set in .env file")
        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise ValueError("JWT_SECRET is not set in .env file!")
        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            session_secret=os.getenv("SESSION_SECRET") or jwt_secret,
            client_url=os.getenv("CLIENT_URL", "http://localhost:5173"),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID"),
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
            google_callback_url=os.getenv("GOOGLE_CALLBACK_URL"),
            email_host=os.getenv("EMAIL_HOST"),
            email_port=int(os.getenv("EMAIL_PORT", "587")),
            email_user=os.getenv("EMAIL_USER"),
            email_pass=os.getenv("EMAIL_PASS"),
            email_secure=_flag(os.getenv("EMAIL_SECURE")),
            email_from=os.getenv("EMAIL_FROM", "noreply@taskify.com"),
            environment=os.getenv("ENVIRONMENT", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
        )
