import os
from pydantic_settings import BaseSettings
from typing import List
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    """Configuration settings for the application."""
    PROJECT_NAME: str = "Food Delivery API"
    VERSION: str = "1.0.0"
    PORT: int = int(os.getenv("PORT", 5000))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: List[str] = ["*"]

    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    DB_NAME: str = os.getenv("DB_NAME", "foodordering")
    # bounds every driver round-trip so an unreachable server fails fast
    DB_TIMEOUT_MS: int = 5000
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    JWT_SECRET: str = os.getenv("JWT_SECRET", "fallbacksecret")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    UPLOAD_DIR: str = "uploads"

    # checkout pricing
    FREE_DELIVERY_THRESHOLD: float = 299
    DELIVERY_FEE: float = 35
    MIN_SERVICE_FEE: float = 10
    SERVICE_FEE_RATE: float = 0.02

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
