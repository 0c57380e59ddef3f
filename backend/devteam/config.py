from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "postgresql+psycopg2://devteam:devteam_dev@db:5432/devteam"
    environment: str = "development"
    run_migrations_on_startup: bool = True

    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 10080  # 7 days

    # Attachment upload settings
    uploads_base_path: Path = Path("/var/lib/devteam/uploads")
    uploads_url_prefix: str = "/uploads"
    serve_uploads: bool = True
    max_attachment_size_bytes: int = 25 * 1024 * 1024  # 25 MB
    default_attachment_content_type: str = "application/octet-stream"


settings = Settings()
