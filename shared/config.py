"""
Shared configuration management for Redis Tester services.

Settings are resolved once at startup, in order of precedence: explicit
keyword arguments, ``REDISTESTER_SERVER_*`` environment variables (and
``.env``), the ``server:`` section of a ``config.yaml`` file, then defaults.
The resulting object is frozen; consumers only ever read from it.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml
from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from shared.errors import ConfigurationError
from shared.logging import REDACTED, get_logger

CONFIG_PREFIX = "redistester"
CONFIG_FILE_NAME = "config.yaml"
CONFIG_FILE_ENV = "REDISTESTER_CONFIG_FILE"
CONFIG_SECTION = "server"

logger = get_logger("shared.config")


def config_search_paths() -> List[Path]:
    """Directories searched for ``config.yaml``, first match wins."""
    return [
        Path.home() / f".{CONFIG_PREFIX}",
        Path("/etc") / CONFIG_PREFIX,
        Path("/usr/src/app"),
        Path("."),
    ]


def find_config_file() -> Optional[Path]:
    """Locate the config file, honouring ``REDISTESTER_CONFIG_FILE``."""
    explicit = os.getenv(CONFIG_FILE_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigurationError(f"config file {explicit} does not exist")
        return path

    for directory in config_search_paths():
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the ``server`` section of a YAML config file.

    Keys are written dashed in the file (``redis-address``) and returned
    with underscores so they line up with :class:`Settings` fields.
    """
    if path is None:
        path = find_config_file()
    if path is None:
        logger.info("No config file provided, proceeding to OS environment")
        return {}

    try:
        with open(path, "r") as f:
            document = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"config file {path} is not valid YAML: {e}") from e

    if not isinstance(document, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")

    section = document.get(CONFIG_SECTION) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{CONFIG_SECTION}' in {path} must be a mapping")

    logger.info("Loaded config file", path=str(path))
    return {str(key).replace("-", "_"): value for key, value in section.items()}


class YamlConfigFileSource(PydanticBaseSettingsSource):
    """Settings source backed by the YAML config file."""

    def __init__(self, settings_cls: Type[BaseSettings]):
        super().__init__(settings_cls)
        self._data = load_config_file()

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {
            name: value
            for name, value in self._data.items()
            if name in self.settings_cls.model_fields
        }


class Settings(BaseSettings):
    """Immutable settings snapshot for a service process."""

    model_config = SettingsConfigDict(
        env_prefix=f"{CONFIG_PREFIX.upper()}_SERVER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 5678
    cert_file: str = ""
    key_file: str = ""

    # Redis
    redis_address: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0
    cache_timeout_seconds: float = Field(default=5.0, gt=0)

    # Request handling
    default_ttl: int = Field(default=300, ge=0)
    max_body_size: int = Field(default=1048576, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats the config file; prod and secrets come from the env.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigFileSource(settings_cls),
            file_secret_settings,
        )

    @property
    def tls_enabled(self) -> bool:
        return bool(self.cert_file and self.key_file)

    def redacted(self) -> "Settings":
        """Copy of these settings that is safe to log or display."""
        return self.model_copy(
            update={"redis_password": REDACTED if self.redis_password else ""}
        )

    def describe(self) -> str:
        """Human-readable dump used by the debug endpoint."""
        lines = [
            f"{name}={value!r}"
            for name, value in self.redacted().model_dump().items()
        ]
        return "Configuration:\n==========\n[" + " ".join(lines) + "]\n"


def get_settings(**overrides: Any) -> Settings:
    """Resolve settings for this process."""
    return Settings(**overrides)
