import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from yandex_auth.domain.auth.model.ticket import AuthenticationMode


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by YAUTH_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Get the value for a field from the YAML config."""
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("YAUTH_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


# =============================================================================
# Yandex Configuration
# =============================================================================


class YandexConfig(BaseModel):
    """Static Yandex OAuth settings (nested in Config, uses env_nested_delimiter)."""

    app_id: str = ""
    app_secret: str = ""
    callback_path: str = "/signin-yandex"
    backchannel_timeout: float = 60.0  # Seconds, bounds each backchannel call
    # Comma separated, e.g. "login:email,login:info". Accepted but not sent to
    # the authorization endpoint.
    scope: str | None = None
    sign_in_as_type: str | None = None  # None = host default sign-in type
    authentication_type: str = "Yandex"
    authentication_mode: AuthenticationMode = AuthenticationMode.PASSIVE
    caption: str = "Yandex"

    @field_validator("callback_path")
    @classmethod
    def validate_callback_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"callback_path must start with '/': {v!r}")
        return v

    @field_validator("backchannel_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("backchannel_timeout must be positive")
        return v


class DataProtectionConfig(BaseModel):
    """Key for protecting the OAuth state blob."""

    secret: str = ""  # Empty = random per-process key (single worker only)


class CookieConfig(BaseModel):
    """Sign-in cookie issued after a successful login."""

    secret: str = ""  # Must be set in production
    algorithm: str = "HS256"
    name: str = "yauth_identity"
    expire_minutes: int = 60 * 24 * 14  # 14 days, for persistent sign-ins
    secure: bool = False  # Enable when served over https


class LoggingConfig(BaseModel):
    """Logging configuration (nested in Config, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Get log file path from YAUTH_LOG_FILE env var."""
        return os.environ.get("YAUTH_LOG_FILE")


class Server(BaseModel):
    """Demo server configuration."""

    name: str = "Yandex Sign-In Demo"
    version: str = "0.1.0"
    host: str = "127.0.0.1"
    port: int = 8000


class Config(BaseSettings):
    yandex: YandexConfig = YandexConfig()
    data_protection: DataProtectionConfig = DataProtectionConfig()
    cookie: CookieConfig = CookieConfig()
    logging: LoggingConfig = LoggingConfig()
    server: Server = Server()

    model_config = {
        "env_prefix": "YAUTH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows YAUTH_YANDEX__APP_ID override
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - YAUTH_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in application startup so every module logger
    picks up the handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    handler: logging.Handler
    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(config.level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
