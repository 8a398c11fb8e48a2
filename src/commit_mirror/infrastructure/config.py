"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # AWS
    aws_stage: str = "prod"
    aws_endpoint: str | None = None
    aws_region: str = "us-east-1"
    s3_git_files_bucket_name: str | None = None
    titvo_event_bus_name: str | None = None
    parameter_table_name: str = "parameters"
    aes_key_path: str = "aes_secret"

    # Parameter names
    github_token_param_name: str = "github_access_token"
    bitbucket_credentials_param_name: str = "bitbucket_client_credentials"

    # Providers
    github_api_url: str = "https://api.github.com"
    bitbucket_api_url: str = "https://api.bitbucket.org/2.0"
    bitbucket_token_url: str = "https://bitbucket.org/site/oauth2/access_token"
    http_timeout_seconds: float = 30.0

    # Pipeline
    max_concurrent_uploads: int = Field(default=10, ge=1)
    skip_unsuccessful_jobs: bool = True

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_local(self) -> bool:
        return self.aws_stage == "local"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
