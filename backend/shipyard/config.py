"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    """Demo service route values and bind address."""

    developer_name: str = "Devops Bharat"
    version: str = "v1.0.0.0"
    host: str = "0.0.0.0"
    port: int = 5000


class PipelineConfig(BaseModel):
    """Paths and policies used to build the default stages."""

    # Must match WorkingDirectory and the venv in deploy/shipyard-app.service
    app_dir: Path = Path("/opt/shipyard")
    requirements_file: str = "requirements.txt"
    venv_dir: str = "venv"
    python: str = "python3"
    unit_file: Path = Path("deploy/shipyard-app.service")
    unit_install_path: Path = Path("/etc/systemd/system/shipyard-app.service")
    service_name: str = "shipyard-app"
    use_sudo: bool = True
    start_failure_fatal: bool = True  # False keeps the "status || true" variant
    stage_timeout_seconds: float | None = None


class SchedulerConfig(BaseModel):
    """Trigger intervals."""

    poll_interval_minutes: int = 5
    source_check_seconds: int = 60
    repo_dir: Path = Path("/opt/shipyard")


class VerifyConfig(BaseModel):
    """Verification script target."""

    base_url: str = "http://127.0.0.1:5000"
    timeout_seconds: float = 10.0
    connect_attempts: int = 5  # the service may still be starting after the Start stage
    retry_delay_seconds: float = 2.0


class NotifyConfig(BaseModel):
    """Build notification behaviour."""

    enabled: bool = True
    parse_mode: str = "HTML"
    max_retries: int = 2
    retry_delay_seconds: float = 2.0


CONFIG_SECTIONS = ("app", "pipeline", "scheduler", "verify", "notify")


class Settings(BaseSettings):
    """Main configuration class."""

    data_dir: Path = Path("data")

    logfire_token: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    app: AppConfig = Field(default_factory=AppConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.yaml"

    @property
    def pipeline_path(self) -> Path:
        return self.data_dir / "pipeline.yaml"

    def load_yaml_config(self) -> None:
        """Merge data/config.yaml sections over the current values."""
        if not self.config_path.exists():
            logger.warning(
                f"Config file not found: {self.config_path}. "
                "Using defaults. Run 'python -m shipyard init' to create it."
            )
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise

        if not yaml_config:
            logger.warning(f"Empty config file: {self.config_path}")
            return

        for section_name in CONFIG_SECTIONS:
            if section_name not in yaml_config:
                continue
            section = getattr(self, section_name)
            section_dict = section.model_dump()
            section_dict.update(yaml_config[section_name] or {})
            setattr(self, section_name, section.__class__(**section_dict))

        logger.info(f"Loaded configuration from {self.config_path}")


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
