# app/core/config.py

from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./partos.db"

    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Registro de Partos API"
    CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Ingestion
    SOURCE_NAME: str = "datos.txt"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024

    class Config:
        env_file = ".env"

settings = Settings()
