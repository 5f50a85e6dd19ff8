"""
Application configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Settings from environment variables"""

    # Default fixture format when a match is created without one
    MATCH_FORMAT: str = os.getenv("MATCH_FORMAT", "T20")
    FOLLOW_ON_MARGIN: int = int(os.getenv("FOLLOW_ON_MARGIN", "200"))
    OVERS_PER_HOUR: float = float(os.getenv("OVERS_PER_HOUR", "14.11"))

    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "scorebook.db")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Comma-separated extra CORS origins
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")


settings = Settings()
