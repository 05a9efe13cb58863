from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "medref"
    db_username: str = "medref"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    legacy_files_root: Path = Path("/app/uploads")
    max_upload_bytes: int = 10 * 1024 * 1024

    strict_status_transitions: bool = False
    identifier_max_attempts: int = 5
