import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    """Configuration settings for the application."""
    PROJECT_NAME: str = "Dinebook API"
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    DB_NAME: str = os.getenv("DB_NAME", "dinebook")

    # JWT
    SECRET_KEY: str = os.getenv("SECRET_KEY", "MySecretKey@123")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    LOG_LEVEL: str = "INFO"

    # file store
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # review moderation policies
    REPORT_THRESHOLD: int = 5
    HELPFUL_ONE_PER_USER: bool = False
    ALLOW_SELF_REPORT: bool = True

    NOTIFICATION_QUEUE_SIZE: int = 1000
    # seconds a single WebSocket send may take before the session is dropped
    NOTIFICATION_SEND_TIMEOUT: float = 2.0

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
