"""Configuration management for the staging store."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "stagestore"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Object storage for finalized uploads
    STORAGE_BACKEND: str = "memory"  # "memory", "local" or "gcs"
    LOCAL_STORAGE_PATH: str = "data/objects"

    # GCP Configuration
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""
    GCS_OBJECT_PREFIX: str = "uploads"

    # Streaming
    READ_CHUNK_SIZE: int = 65536  # 64KB

    @property
    def storage_backend_name(self) -> str:
        """Normalized STORAGE_BACKEND value."""
        return self.STORAGE_BACKEND.strip().lower()


# Singleton settings instance
settings = Settings()
