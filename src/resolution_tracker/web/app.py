"""Flask application factory for the Resolution Tracker web interface."""

import logging

from flask import Flask

from resolution_tracker.config import (
    Config,
    config_exists,
    configure_logging,
    default_config,
    load_config,
)
from resolution_tracker.exceptions import ConfigNotFoundError, InvalidConfigError
from resolution_tracker.kvstore import FileKeyValueStore
from resolution_tracker.storage import ResolutionStorage

logger = logging.getLogger(__name__)


def get_app_config() -> Config:
    """Load the config file, or defaults when there is none.

    Raises:
        ConfigNotFoundError: If the config file disappears while loading
        InvalidConfigError: If the config file is invalid
    """
    if not config_exists():
        return default_config()

    try:
        return load_config()
    except FileNotFoundError as e:
        raise ConfigNotFoundError(str(e)) from e
    except ValueError as e:
        raise InvalidConfigError(str(e)) from e


def create_app(config: Config | None = None, storage: ResolutionStorage | None = None) -> Flask:
    """Create and configure the Flask application.

    Raises:
        ConfigNotFoundError: If the config file disappears while loading
        InvalidConfigError: If the config file is invalid
    """
    if config is None:
        config = get_app_config()

    configure_logging(config.log_level)

    app = Flask(__name__)

    app.config["SECRET_KEY"] = "resolution-tracker-local-dev"
    app.config["DATA_DIR"] = str(config.data_path)

    if storage is None:
        storage = ResolutionStorage(FileKeyValueStore(config.data_path), key=config.storage_key)
    app.extensions["resolution_storage"] = storage

    from resolution_tracker.web.routes import bp
    app.register_blueprint(bp)

    logger.info(f"Storing resolutions under {config.data_path}")
    return app


def main() -> None:
    """Run the local development server."""
    try:
        app = create_app()
    except (ConfigNotFoundError, InvalidConfigError) as e:
        raise SystemExit(f"Error: {e}") from e
    app.run(host="127.0.0.1", port=5000)
