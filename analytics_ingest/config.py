"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_port: int = 8050
    data_dir: Path = Path("/app/data")
    log_level: str = "info"

    # Ingestion limits: the only resource guards applied while parsing
    max_upload_size_mb: int = 50
    max_rows_per_sheet: int = 100_000
    header_scan_rows: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("max_upload_size_mb", "max_rows_per_sheet", "header_scan_rows")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject limits that would make every upload or sheet unparseable."""
        if v <= 0:
            raise ValueError(f"Ingestion limits must be positive, got {v}")
        return v

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def db_path(self) -> Path:
        return self.data_dir / "analytics.db"

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"


settings = Settings()
