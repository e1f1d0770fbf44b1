"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "ponto"
    postgres_password: str = "ponto_dev_password"
    postgres_db: str = "ponto"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    # Redis (Celery broker, readiness check)
    redis_url: str = "redis://localhost:6379/0"

    # API
    api_port: int = 8000
    api_host: str = "0.0.0.0"
    secret_key: str = "dev-secret-key-change-in-production"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"

    # Signing: simulated, local, aws_kms
    signing_key_provider: str = "simulated"
    signing_key_path: str = "./secrets/ponto_signing_key.pem"
    signing_key_id: Optional[str] = None  # For KMS

    # AWS (for KMS)
    aws_region: Optional[str] = None

    # Backups: local, s3
    backup_storage_provider: str = "local"
    backup_dir: str = "./backups"
    backup_retention_days: int = 30
    minio_endpoint: str = "localhost:9000"
    minio_access_key: Optional[str] = None
    minio_secret_key: Optional[str] = None
    minio_bucket: str = "ponto-backups"
    minio_use_ssl: bool = False

    # CLT
    clt_daily_hours_limit: float = 8.0
    report_batch_size: int = 500

    # Audit log pagination
    audit_log_default_limit: int = 50
    audit_log_max_limit: int = 500

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if self.signing_key_provider == "simulated":
                raise ValueError(
                    "SIGNING_KEY_PROVIDER=simulated is not allowed in production. "
                    "Use SIGNING_KEY_PROVIDER=aws_kms."
                )
            if self.backup_storage_provider == "local":
                raise ValueError(
                    "BACKUP_STORAGE_PROVIDER=local is not allowed in production. "
                    "Use BACKUP_STORAGE_PROVIDER=s3."
                )
            if not self.minio_access_key or not self.minio_secret_key:
                raise ValueError(
                    "MINIO_ACCESS_KEY and MINIO_SECRET_KEY are required in production. "
                    "Do not use default credentials."
                )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
