"""Configuration models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("newsdesk", description="Database name")
    user: str = Field("newsdesk", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field("NEWSDESK_DB_PASSWORD", description="Environment variable for password")
    pool_min_size: int = Field(1, ge=1)
    pool_max_size: int = Field(10, ge=1)


class BatchConfig(BaseModel):
    """Default batch sizes per operation."""

    word_count: int = Field(10, ge=1, description="Cheap metadata updates")
    clean_content: int = Field(5, ge=1, description="Content extraction")
    sync: int = Field(5, ge=1, description="External source sync")
    ingest: int = Field(10, ge=1, description="Candidate ingestion")


class IngestionConfig(BaseModel):
    """Search-prompt ingestion settings."""

    base_url: str = Field("https://api.perplexity.ai", description="OpenAI-compatible API base URL")
    model: str = Field("sonar", description="Default search model")
    api_key_env: Optional[str] = Field("PERPLEXITY_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    timeout: float = Field(60.0, gt=0, description="Request timeout in seconds")
    min_score: float = Field(0.0, ge=0.0, description="Default minimum relevance score")
    limit: int = Field(20, ge=1, le=1000, description="Default maximum candidates per run")


class WordPressConfig(BaseModel):
    """WordPress REST API settings."""

    base_url: Optional[str] = Field(None, description="Site URL, e.g. https://example.com")
    username_env: Optional[str] = Field("WORDPRESS_USERNAME", description="Environment variable for user")
    app_password_env: Optional[str] = Field(
        "WORDPRESS_APP_PASSWORD", description="Environment variable for application password"
    )
    timeout: float = Field(30.0, gt=0)
    per_page: int = Field(20, ge=1, le=100)


class SchedulerConfig(BaseModel):
    """Schedule-driven runner settings."""

    poll_interval_seconds: float = Field(60.0, gt=0)
    timezone: str = Field("UTC", description="Timezone cron expressions are evaluated in")


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field("INFO")
    log_dir: Optional[str] = Field(None, description="Directory for daily log files")
    retention_days: int = Field(30, ge=1)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    wordpress: WordPressConfig = Field(default_factory=WordPressConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class SourceConfig(BaseModel):
    """Source configuration from sources.yaml."""

    name: str = Field(..., description="Source name")
    url: str = Field(..., description="Feed or API URL")
    kind: str = Field("rss", description="Source kind (rss, wordpress)")
    weight: float = Field(1.0, description="Default score for items from this source", ge=0.0, le=1.0)
    enabled: bool = Field(True, description="Whether source is enabled")


class JobConfig(BaseModel):
    """Seed job definition from jobs.yaml."""

    name: str = Field(..., description="Unique job name")
    job_type: str = Field("news_import", description="Handler that runs the job")
    schedule: str = Field(..., description="Cron expression")
    is_enabled: bool = Field(True)
    parameters: Dict[str, Any] = Field(default_factory=dict)
