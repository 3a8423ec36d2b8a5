"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Gemini API
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Quizcraft Adaptive Assessment"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000

    # Uploads
    UPLOAD_DIR: str = "/tmp/quizcraft/lectures"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_UPLOAD_EXTENSIONS: List[str] = ["pdf", "docx", "txt"]

    # Quiz Settings
    DEFAULT_TIME_LIMIT_MINUTES: int = 30
    DEFAULT_NUM_QUESTIONS: int = 10
    MAX_QUIZ_QUESTIONS: int = 30
    QUIZ_CACHE_TTL: int = 3600  # 1 hour

    # Per-student write serialization
    LOCK_TIMEOUT_SECONDS: int = 30
    LOCK_WAIT_SECONDS: float = 5.0

    # Mastery thresholds (percent)
    WEAK_TOPIC_THRESHOLD: float = 70.0
    STRONG_TOPIC_THRESHOLD: float = 80.0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
