"""Configuration management for dutyjobs."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcessorConfig(BaseModel):
    """Options recognized by the batch job processor."""

    max_concurrent_jobs: int = Field(3, ge=1, description="Jobs allowed to run at once")
    retry_attempts: int = Field(3, ge=0, description="maxRetries stamped on new jobs")
    retry_delay: int = Field(1000, ge=0, description="Base retry delay in ms (linear)")
    batch_size: int = Field(10, ge=1, description="Items per executor batch")
    progress_update_interval: int = Field(
        500, ge=0, description="Suggested polling interval for callers, in ms"
    )
    enable_persistence: bool = Field(True, description="Mirror jobs to the record store")

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay / 1000


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DUTYJOBS_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Processor
    max_concurrent_jobs: int = 3
    retry_attempts: int = 3
    retry_delay: int = 1000
    batch_size: int = 10
    progress_update_interval: int = 500
    enable_persistence: bool = True

    # Record store (PostgREST / Supabase REST). Empty URL keeps records in memory.
    postgrest_url: str = ""
    postgrest_api_key: str = ""
    postgrest_timeout: float = 30.0

    # Domain endpoints of the web application
    services_url: str = "http://localhost:3000"
    services_api_key: str = ""
    services_timeout: float = 30.0

    def processor_config(self) -> ProcessorConfig:
        """Build the processor options from these settings."""
        return ProcessorConfig(
            max_concurrent_jobs=self.max_concurrent_jobs,
            retry_attempts=self.retry_attempts,
            retry_delay=self.retry_delay,
            batch_size=self.batch_size,
            progress_update_interval=self.progress_update_interval,
            enable_persistence=self.enable_persistence,
        )


# Global settings instance
settings = Settings()
