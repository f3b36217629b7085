"""Configuration management for Resolution Tracker."""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

from resolution_tracker.storage import STORAGE_KEY

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".resolution-tracker"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


def _default_data_dir() -> str:
    return str(get_config_dir() / "data")


@dataclass
class Config:
    """Configuration for local storage and logging."""

    data_dir: str = field(default_factory=_default_data_dir)
    storage_key: str = STORAGE_KEY
    log_level: str = "INFO"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        if not self.data_dir:
            errors.append("Storage data_dir is required")

        if not self.storage_key:
            errors.append("Storage key is required")

        if self.log_level.upper() not in LOG_LEVELS:
            errors.append(
                f"Logging level must be one of {', '.join(LOG_LEVELS)}"
            )

        return errors


def default_config() -> Config:
    """Build the configuration used when no config file exists."""
    return Config()


def config_exists() -> bool:
    """Check if configuration file exists."""
    return get_config_path().exists()


def load_config() -> Config:
    """Load configuration from TOML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.resolution-tracker/config.toml to set up."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    storage_section = data.get("storage", {})
    logging_section = data.get("logging", {})

    config = Config(
        data_dir=storage_section.get("data_dir", _default_data_dir()),
        storage_key=storage_section.get("key", STORAGE_KEY),
        log_level=logging_section.get("level", "INFO"),
    )

    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: Config) -> None:
    """Save configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()

    data: dict = {
        "storage": {
            "data_dir": config.data_dir,
        },
        "logging": {
            "level": config.log_level,
        },
    }

    if config.storage_key != STORAGE_KEY:
        data["storage"]["key"] = config.storage_key

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
