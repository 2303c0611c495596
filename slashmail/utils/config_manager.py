"""Configuration manager for settings stored as JSON.

The file is read-only from slashmail's point of view: it is loaded once per
invocation and never written back.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import FileSystemError, InvalidConfigError, MissingConfigError
from .logging import get_logger
from .paths import CONFIG_PATH

logger = get_logger(__name__)


class AccountConfig(BaseModel):
    """Pydantic model for account configuration."""

    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    tls: bool = False
    user: Optional[str] = None
    network_timeout: int = 30  # in seconds

    def resolved_port(self, tls: bool) -> int:
        """Explicit port, or the conventional default for the transport."""
        if self.port is not None:
            return self.port
        return 993 if tls else 1143


class FoldersConfig(BaseModel):
    """Pydantic model for folder defaults."""

    model_config = ConfigDict(extra="forbid")

    default_folder: str = "INBOX"
    trash_folder: str = "Trash"


class LoggingConfig(BaseModel):
    """Pydantic model for logging settings."""

    model_config = ConfigDict(extra="forbid")

    log_level: str = "INFO"
    console_level: str = "WARNING"


class AppConfig(BaseModel):
    """Pydantic model for overall application configuration."""

    model_config = ConfigDict(extra="forbid")

    account: AccountConfig = Field(default_factory=AccountConfig)
    folders: FoldersConfig = Field(default_factory=FoldersConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ConfigManager:
    """Loads application configuration.

    An explicit path must exist. Without one, the default location is used
    when present and built-in defaults otherwise.
    """

    def __init__(self, config: AppConfig, path: Optional[Path] = None):
        self.config = config
        self.path = path

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "ConfigManager":
        """Load configuration from ``config_path`` or the default location."""

        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise MissingConfigError(
                    f"Configuration file not found: {path}",
                    details={"path": str(path)},
                )
        else:
            path = CONFIG_PATH
            if not path.exists():
                logger.debug("No config file found, using defaults.")
                return cls(AppConfig())

        return cls(cls._read(path), path)

    @staticmethod
    def _read(path: Path) -> AppConfig:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise InvalidConfigError(
                f"Configuration file is not valid JSON: {path}: {e}",
                details={"path": str(path)},
            ) from e
        except OSError as e:
            raise FileSystemError(
                f"Failed to read configuration file: {path}: {e}",
                details={"path": str(path)},
            ) from e

        if not isinstance(data, dict):
            raise InvalidConfigError(
                f"Configuration file must contain a JSON object: {path}",
                details={"path": str(path)},
            )

        try:
            config = AppConfig(**data)
        except ValidationError as e:
            logger.error(f"Failed to validate config file: {e}")
            raise InvalidConfigError(
                f"Configuration data does not match expected schema: {e}",
                details={"path": str(path)},
            ) from e

        logger.debug(f"Configuration loaded from {path}")
        return config
