from dataclasses import dataclass
from pathlib import Path
import json
import os
import sys

import yaml
from pydantic import ValidationError

from config_models import AppConfigModel
from errors import ConfigError


APP_NAME = "thepriceisright"
CONFIG_ENV = "TPIR_CONFIG"
ENV_OVERRIDES = {
    "TPIR_AREA": "area_code",
    "TPIR_MAX_PRICE": "max_price",
    "TPIR_CACHE_DIR": "cache_dir",
    "TPIR_API_BASE_URL": "api_base_url",
}


@dataclass
class AppConfig:
    config_file: Path | None
    cache_dir: Path
    settings: AppConfigModel


def user_cache_dir():
    if sys.platform == "win32":
        base = os.getenv("LocalAppData")
        if not base:
            raise ConfigError("%LocalAppData% is not defined")
        return Path(base)
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    base = os.getenv("XDG_CACHE_HOME")
    if base and Path(base).is_absolute():
        return Path(base)
    return Path.home() / ".cache"


def user_config_dir():
    if sys.platform == "win32":
        base = os.getenv("AppData")
        return Path(base) if base else Path.home()
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    base = os.getenv("XDG_CONFIG_HOME")
    if base and Path(base).is_absolute():
        return Path(base)
    return Path.home() / ".config"


def default_config_file():
    return user_config_dir() / APP_NAME / "config.yaml"


def read_config_file(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(cfg, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return cfg


def env_overrides(environ=None):
    environ = os.environ if environ is None else environ
    return {key: environ[name] for name, key in ENV_OVERRIDES.items() if environ.get(name)}


def load_config(config_file=None, environ=None):
    """Read YAML settings, apply environment overrides and validate them.

    An explicitly given (or ``TPIR_CONFIG``) file must exist; the per-user
    default file is optional.
    """
    environ = os.environ if environ is None else environ
    explicit = config_file or environ.get(CONFIG_ENV)
    path = Path(explicit).expanduser() if explicit else default_config_file()

    cfg = {}
    if explicit or path.exists():
        cfg = read_config_file(path)
    else:
        path = None
    cfg = {**cfg, **env_overrides(environ)}

    try:
        settings = AppConfigModel.model_validate(cfg)
    except ValidationError as exc:
        raise ConfigError(
            f"invalid configuration: {exc.error_count()} error(s)",
            detail=json.loads(exc.json(include_url=False)),
        ) from exc
    return settings, path


def build_container(config_file=None, environ=None) -> AppConfig:
    settings, path = load_config(config_file, environ=environ)
    if settings.cache_dir:
        cache_dir = Path(settings.cache_dir).expanduser()
    else:
        cache_dir = user_cache_dir() / APP_NAME
    return AppConfig(config_file=path, cache_dir=cache_dir, settings=settings)
