from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./cosmic_devspace.db"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Email (Brevo)
    BREVO_API_KEY: Optional[str] = None
    ADMIN_EMAIL: Optional[str] = None
    MAIL_FROM: str = "no-reply@cosmic-devspace.dev"

    # Frontend
    FRONTEND_URL: Optional[str] = None
    FRONTEND_DIR: str = "frontend"

    # Guestbook posting limit per IP
    GUESTBOOK_RATE_LIMIT: int = 5
    GUESTBOOK_RATE_WINDOW_MINUTES: int = 60

    # Global per-IP request limit
    RATE_LIMIT: str = "100/15 minutes"
    RATE_LIMIT_ENABLED: bool = True

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

settings = Settings()
