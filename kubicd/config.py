"""Configuration management for kubicd.

Settings are loaded with the following precedence:
1. Environment variables (``KUBICD_<SECTION>__<FIELD>``, e.g. ``KUBICD_API__KEY``)
2. A ``.env`` file in the working directory
3. Configuration file
4. Default values

Static cluster configuration (control-plane and load balancer minions) lives in
separate per-section files read by :class:`ClusterConfigReader`.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from kubicd.errors import ConfigurationError

logger = logging.getLogger("kubicd.config")

DEFAULT_CONFIG_PATHS = [
    Path("/etc/kubicd/kubicd.yaml"),
    Path("~/.config/kubicd/kubicd.yaml").expanduser(),
    Path("kubicd.yaml").absolute(),
]


class SaltConfig(BaseModel):
    """Remote execution settings."""
    binary: str = Field(default="salt", description="salt client executable")
    command_timeout: int = Field(
        default=600,
        description="Timeout in seconds for a single remote command"
    )


class JoinConfig(BaseModel):
    """Node join settings."""
    config_dir: str = Field(
        default="/etc/kubicd",
        description="Directory holding the static cluster configuration"
    )
    max_parallel_nodes: int = Field(
        default=10,
        description="Maximum number of nodes provisioned at the same time"
    )
    token_max_age_hours: float = Field(
        default=23,
        description="Age after which the cached join token is regenerated"
    )

    @field_validator('max_parallel_nodes')
    @classmethod
    def check_parallelism(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_parallel_nodes must be at least 1")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level")
    file: Optional[str] = Field(default=None, description="Optional log file")
    max_size_mb: int = Field(default=100, description="Log file size before rotation")
    backup_count: int = Field(default=5, description="Rotated log files to keep")


class ApiConfig(BaseModel):
    """HTTP API configuration."""
    key: str = Field(default="kubicd-secret", description="Value expected in X-API-Key")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=7148)


class PkiConfig(BaseModel):
    """Certificate issuance configuration."""
    dir: str = Field(default="/etc/kubicd/pki", description="certstrap depot path")
    ca_name: str = Field(default="Kubic-Control-CA", description="Signing CA name")
    certstrap: str = Field(default="certstrap")


class Settings(BaseSettings):
    """kubicd service settings.

    Keyword arguments (the parsed config file) rank below environment
    variables and the .env file.
    """
    salt: SaltConfig = Field(default_factory=SaltConfig)
    join: JoinConfig = Field(default_factory=JoinConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    pki: PkiConfig = Field(default_factory=PkiConfig)

    model_config = SettingsConfigDict(
        env_prefix="KUBICD_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> 'Settings':
        """Load settings from file and environment variables."""
        config_data: Dict[str, Any] = {}

        if config_path:
            config_path = Path(config_path).expanduser().absolute()
            if not config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {config_path}")
            config_data = cls._load_config_file(config_path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break

        return cls(**config_data)

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        logger.debug(f"Loaded settings from {path}")
        return data


_settings: Optional[Settings] = None


def get_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load(config_path)
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the global settings instance."""
    global _settings
    _settings = settings


class ClusterConfigReader:
    """Read static cluster configuration.

    Each section is a YAML mapping stored as ``<config_dir>/<section>.conf``,
    for example ``control-plane.conf``::

        master: kubic-master1
        loadbalancer_salt: haproxy1
    """

    def __init__(self, config_dir: Union[str, Path]):
        self.config_dir = Path(config_dir).expanduser()

    def read(self, section: str, key: str) -> str:
        """Return the value of ``key`` in ``section``, or ``""`` if unset.

        Raises:
            ConfigurationError: If the section file exists but cannot be parsed
        """
        path = self.config_dir / f"{section}.conf"
        if not path.exists():
            logger.debug(f"{path} does not exist")
            return ""
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain key: value pairs")
        value = data.get(key)
        return "" if value is None else str(value).strip()
