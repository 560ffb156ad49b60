"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Capture"
    debug: bool = False
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Event document store
    database_url: str = "sqlite:///./capture.db"

    # Identity (Firebase ID tokens)
    firebase_project_id: str = ""

    # Google Cloud Storage for event images
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""  # Obtained via scripts/get_token.py
    storage_bucket: str = ""
    event_images_prefix: str = "event_images"
    image_jpeg_quality: int = 80

    # Expiry sweep
    expiry_interval_minutes: int = 5


settings = Settings()
