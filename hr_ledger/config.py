from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_TITLE: str = "HR Leave & Attendance Ledger"
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "hr_ledger"
    PRODUCTION_MODE: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 11000
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    DEFAULT_LEAVE_ALLOWANCE: int = 20
    ADMIN_LEAVE_ALLOWANCE: int = 25
    COMMIT_RECOVERY_INTERVAL_MINUTES: int = 5
    COMMIT_STALE_AFTER_SECONDS: int = 60
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
