"""
Configuration Module - Load and validate application settings.
==============================================================

Loads configuration from:
1. config/settings.yaml (defaults)
2. Environment variables from .env file
3. Environment variables from system

Environment variables override YAML defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# Load .env file early
load_dotenv()

# Find project root (where pyproject.toml is located)
def _find_project_root() -> Path:
    """Find the project root directory by looking for pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    # Fallback to current working directory
    return Path.cwd()


PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.yaml"


# ─────────────────────────────────────────────────────────────────────────────
# Nested Configuration Models
# ─────────────────────────────────────────────────────────────────────────────


class ElasticConfig(BaseModel):
    """Connection settings for the Elasticsearch cluster."""

    url: str = "http://localhost:9200"
    class_index: str = "classes"
    employee_index: str = "employees"
    request_timeout: float = 10.0
    connect_retries: int = 5
    retry_min_wait: int = 1
    retry_max_wait: int = 10


class SearchConfig(BaseModel):
    """Query analysis and ranking settings."""

    default_limit: int = 10
    max_limit: int = 100
    term_id_pattern: str = r"^\d{6}$"
    crn_length: int = 5
    phone_length: int = 10

    # Section types that should never be the default top hit
    demoted_schedule_types: list[str] = Field(
        default_factory=lambda: ["Lab", "Recitation & Discussion", "Seminar"]
    )
    demotion_weight: float = 0.5
    rerank_lookahead: int = 10
    # Engine cap on from + size (index.max_result_window)
    max_result_window: int = 10000

    # "field^boost" entries fed to the multi_match query
    class_fields: list[str] = Field(
        default_factory=lambda: [
            "class.code^5",
            "class.subject^4",
            "class.class_id^3",
            "class.name^3",
            "class.desc",
            "class.crns",
        ]
    )
    employee_fields: list[str] = Field(
        default_factory=lambda: [
            "employee.name^2",
            "employee.emails",
            "employee.phones",
            "employee.title",
            "employee.interests",
        ]
    )

    suggest_field: str = "class.name"
    suggest_fields: list[str] = Field(
        default_factory=lambda: ["class.name", "employee.name"]
    )
    suggest_prefix_length: int = 2
    suggest_min_word_length: int = 2

    @property
    def search_fields(self) -> list[str]:
        """All weighted fields, classes first."""
        return self.class_fields + self.employee_fields


class IngestionConfig(BaseModel):
    """Bulk indexing settings."""

    batch_size: int = 100
    refresh: str = "wait_for"

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch_size must be positive")
        return v


class PathsConfig(BaseModel):
    """Data paths configuration."""

    data_dir: str = "data"
    courses_file: str = "data/courses.jsonl"
    employees_file: str = "data/employees.jsonl"

    def resolve(self, base_path: Path) -> "ResolvedPaths":
        """Resolve paths relative to a base path."""
        return ResolvedPaths(
            data_dir=base_path / self.data_dir,
            courses_file=base_path / self.courses_file,
            employees_file=base_path / self.employees_file,
        )


class ResolvedPaths(BaseModel):
    """Resolved absolute paths."""

    data_dir: Path
    courses_file: Path
    employees_file: Path

    model_config = {"arbitrary_types_allowed": True}


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    rich_console: bool = True
    file: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Main Settings Class
# ─────────────────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from:
    1. config/settings.yaml (defaults)
    2. Environment variables

    Environment variables override YAML settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Top-level environment overrides
    elastic_url: Optional[str] = Field(default=None, validation_alias="ELASTIC_URL")
    log_level: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")

    # Nested configurations (from YAML)
    elastic: ElasticConfig = Field(default_factory=ElasticConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    aliases: dict[str, str] = Field(default_factory=dict)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Computed properties
    _project_root: Path = PROJECT_ROOT
    _resolved_paths: Optional[ResolvedPaths] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML arrives as init kwargs; the environment must still win
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @field_validator("aliases", mode="before")
    @classmethod
    def validate_aliases(cls, v: Any) -> dict[str, str]:
        """Accept a missing section in YAML."""
        if v is None:
            return {}
        return {str(key): str(value) for key, value in dict(v).items()}

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return self._project_root

    @property
    def resolved_paths(self) -> ResolvedPaths:
        """Get resolved absolute paths."""
        if self._resolved_paths is None:
            self._resolved_paths = self.paths.resolve(self._project_root)
        return self._resolved_paths

    def get_effective_elastic_url(self) -> str:
        """Get the effective Elasticsearch URL (env override or config)."""
        if self.elastic_url:
            return self.elastic_url
        return self.elastic.url

    def get_effective_log_level(self) -> str:
        """Get the effective log level (env override or config)."""
        if self.log_level:
            return self.log_level.upper()
        return self.logging.level.upper()


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def _create_settings(config_path: Optional[Path] = None) -> Settings:
    """Create settings instance by merging YAML defaults with environment."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    yaml_config = _load_yaml_config(config_path)

    return Settings(**yaml_config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the singleton settings instance.

    Returns:
        Settings instance with merged configuration

    Example:
        >>> settings = get_settings()
        >>> print(settings.ingestion.batch_size)
        100
    """
    return _create_settings()


def reload_settings() -> Settings:
    """
    Force reload of settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
