from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_url: str = "sqlite:///./recipebox.db"

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 24

    # Vertex AI / Gemini
    google_cloud_project: Optional[str] = None
    google_cloud_location: str = "us-west1"
    google_ai_model: str = "gemini-1.5-pro"
    generation_timeout_seconds: int = 60
    generation_retries: int = 2

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    cors_origins: List[str] = ["*"]


settings = Settings()
