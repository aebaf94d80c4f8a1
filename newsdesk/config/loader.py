"""Configuration loader."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .models import ConfigModel, JobConfig, SourceConfig

T = TypeVar("T", bound=BaseModel)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "newsdesk"


class Config:
    """Configuration manager."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """Initialize config manager."""
        if config_path is None:
            env_path = os.environ.get("NEWSDESK_CONFIG")
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_DIR / "config.yaml"
        self.config_path = config_path
        self._config: Optional[ConfigModel] = None

    @property
    def config(self) -> ConfigModel:
        """Get loaded config."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    @property
    def sources_path(self) -> Path:
        return self.config_path.parent / "sources.yaml"

    @property
    def jobs_path(self) -> Path:
        return self.config_path.parent / "jobs.yaml"

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration dict."""
        db_config = self.config.postgres.model_dump()

        # Handle password from environment if specified
        if db_config.get("password_env"):
            password = os.environ.get(db_config["password_env"])
            if password:
                db_config["password"] = password

        return db_config

    def get_ingestion_config(self) -> Dict[str, Any]:
        """Get search ingestion configuration dict."""
        ingestion_config = self.config.ingestion.model_dump()

        # Handle API key from environment if specified
        if ingestion_config.get("api_key_env"):
            api_key = os.environ.get(ingestion_config["api_key_env"])
            if api_key:
                ingestion_config["api_key"] = api_key

        return ingestion_config

    def get_wordpress_auth(self) -> Optional[tuple]:
        """Get (username, application password) for WordPress, if both are set."""
        wp = self.config.wordpress
        username = os.environ.get(wp.username_env) if wp.username_env else None
        password = os.environ.get(wp.app_password_env) if wp.app_password_env else None
        if username and password:
            return (username, password)
        return None


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}

        return ConfigModel(**config_data)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def _load_entries(path: Path, key: str, model: Type[T]) -> List[T]:
    if not path.exists():
        raise FileNotFoundError(f"{key.title()} file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {key} file: {e}")

    if data is None or key not in data:
        return []

    entries = []
    for entry in data[key] or []:
        try:
            entries.append(model(**entry))
        except (TypeError, ValidationError) as e:
            name = entry.get("name", "unknown") if isinstance(entry, dict) else "unknown"
            raise ValueError(f"Invalid entry '{name}' in {path}: {e}")
    return entries


def _save_entries(entries: List[BaseModel], path: Path, key: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {key: [e.model_dump() for e in entries]}

    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_sources(sources_path: Path) -> List[SourceConfig]:
    """Load sources from YAML file."""
    return _load_entries(sources_path, "sources", SourceConfig)


def load_jobs(jobs_path: Path) -> List[JobConfig]:
    """Load seed job definitions from YAML file."""
    return _load_entries(jobs_path, "jobs", JobConfig)


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def save_sources(sources: List[SourceConfig], sources_path: Path) -> None:
    """Save sources to YAML file."""
    _save_entries(sources, sources_path, "sources")


def save_jobs(jobs: List[JobConfig], jobs_path: Path) -> None:
    """Save seed job definitions to YAML file."""
    _save_entries(jobs, jobs_path, "jobs")
