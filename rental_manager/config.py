from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote_plus

import yaml

from .errors import ConfigurationError

CONFIG_FILE_VARIABLE = "RM_CONFIG_FILE"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    mongodb_host: str
    mongodb_database: str
    mongodb_user: str
    mongodb_password: str
    car_server_url: str
    mongodb_port: int = 27017
    expose_port: int = 80
    collection_prefix: str = ""
    request_timeout: float = 5.0
    allow_origins: tuple[str, ...] = ()
    log_level: str = "INFO"

    @property
    def mongodb_uri(self) -> str:
        user = quote_plus(self.mongodb_user)
        password = quote_plus(self.mongodb_password)
        return f"mongodb://{user}:{password}@{self.mongodb_host}:{self.mongodb_port}/{self.mongodb_database}"


# variable name -> (setting, required)
_VARIABLES: dict[str, tuple[str, bool]] = {
    "MONGODB_DATABASE_HOST": ("mongodb_host", True),
    "MONGODB_DATABASE_PORT": ("mongodb_port", False),
    "MONGODB_DATABASE_NAME": ("mongodb_database", True),
    "MONGODB_DATABASE_USER": ("mongodb_user", True),
    "MONGODB_DATABASE_PASSWORD": ("mongodb_password", True),
    "RM_EXPOSE_PORT": ("expose_port", False),
    "RM_COLLECTION_PREFIX": ("collection_prefix", False),
    "RM_CAR_SERVER": ("car_server_url", True),
    "RM_REQUEST_TIMEOUT": ("request_timeout", False),
    "RM_ALLOW_ORIGINS": ("allow_origins", False),
    "RM_LOG_LEVEL": ("log_level", False),
}


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Build the settings from an optional YAML file overlaid by the environment.

    The YAML file is a flat mapping using the same keys as the environment
    variables. Without ``path`` the file named by ``RM_CONFIG_FILE`` is read,
    if that variable is set.
    """
    env = os.environ if environ is None else environ
    path = path or env.get(CONFIG_FILE_VARIABLE)

    raw: dict[str, Any] = {}
    if path:
        raw.update(_read_yaml(Path(path)))
    raw.update({name: value for name, value in env.items() if name in _VARIABLES})

    values: dict[str, Any] = {}
    for name, (setting, required) in _VARIABLES.items():
        value = raw.get(name)
        if value is None or value == "":
            if required:
                raise ConfigurationError(f"missing configuration value {name}")
            continue
        values[setting] = _convert(name, setting, value)
    return Settings(**values)


def configure_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(f"unknown log level {level!r}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except OSError as error:
        raise ConfigurationError(f"cannot read configuration file {path}") from error
    except yaml.YAMLError as error:
        raise ConfigurationError(f"malformed configuration file {path}") from error

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"configuration file {path} must contain a mapping")
    return data


def _convert(name: str, setting: str, value: Any) -> Any:
    try:
        if setting in ("mongodb_port", "expose_port"):
            port = int(value)
            if not 0 < port < 65536:
                raise ValueError(port)
            return port
        if setting == "request_timeout":
            timeout = parse_duration(value)
            if timeout <= 0:
                raise ValueError(timeout)
            return timeout
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"malformed configuration value {name}={value!r}") from error

    if setting == "allow_origins":
        if isinstance(value, str):
            value = value.split(",")
        return tuple(str(origin).strip() for origin in value if str(origin).strip())
    return str(value)


_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """Return seconds for ``5``, ``2.5``, ``500ms``, ``5s``, ``1m`` or ``1h``."""
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    for unit in ("ms", "s", "m", "h"):
        if text.endswith(unit):
            return float(text[: -len(unit)]) * _DURATION_UNITS[unit]
    return float(text)
