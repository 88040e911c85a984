"""Runtime settings: defaults, config file, environment and CLI overrides.

Precedence, lowest to highest: Constants defaults, YAML/JSON config file,
PREFETCH_* environment variables, CLI flags. The resulting Settings object is
passed explicitly to each pipeline component.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

from cache.store import default_cache_dir
from constants import Constants
from errors import ConfigurationError

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PREFETCH_"


@dataclass(frozen=True)
class Settings:
    """Tunables for one prefetch run."""
    jobs: int = Constants.DEFAULT_JOBS
    retries: int = Constants.FETCH_RETRY_MAX
    backoff_base: float = Constants.FETCH_BACKOFF_BASE_SEC
    backoff_max: float = Constants.FETCH_BACKOFF_MAX_SEC
    timeout: float = Constants.REQUEST_TIMEOUT
    registry_url: str = Constants.REGISTRY_URL_CRATES_IO
    download_url: str = Constants.DOWNLOAD_URL_CRATES_IO
    cache_dir: Optional[str] = None

    @property
    def resolved_cache_dir(self) -> str:
        return self.cache_dir or default_cache_dir()


_INT_FIELDS = {"jobs", "retries"}
_FLOAT_FIELDS = {"backoff_base", "backoff_max", "timeout"}
_KNOWN = {f.name for f in fields(Settings)}


def _coerce(key: str, value: Any, origin: str) -> Any:
    try:
        if key in _INT_FIELDS:
            coerced = int(value)
            if coerced < 1:
                raise ValueError("must be at least 1")
            return coerced
        if key in _FLOAT_FIELDS:
            coerced = float(value)
            if coerced < 0:
                raise ValueError("must not be negative")
            return coerced
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid value for {key!r} in {origin}: {value!r} ({e})") from e
    if value is None or str(value).strip() == "":
        raise ConfigurationError(f"empty value for {key!r} in {origin}")
    return os.path.expanduser(str(value)) if key == "cache_dir" else str(value)


def _apply(settings: Settings, values: Mapping[str, Any], origin: str) -> Settings:
    updates: Dict[str, Any] = {}
    for key, value in values.items():
        norm = str(key).replace("-", "_").lower()
        if norm not in _KNOWN:
            logger.warning("Ignoring unknown setting %r in %s", key, origin)
            continue
        updates[norm] = _coerce(norm, value, origin)
    return replace(settings, **updates) if updates else settings


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load settings from a YAML or JSON file.

    A top-level `prefetch:` section is used when present, otherwise the whole
    mapping.

    Raises:
        ConfigurationError: missing, unreadable or malformed file.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        raise ConfigurationError(f"config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"failed to load config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config {config_path} must be a mapping")
    section = data.get(Constants.CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{Constants.CONFIG_SECTION}' in {config_path} must be a mapping")
    return section


def env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    """Collect PREFETCH_<SETTING> variables, e.g. PREFETCH_JOBS=4."""
    found = {}
    for key in _KNOWN:
        value = environ.get(_ENV_PREFIX + key.upper())
        if value is not None and value.strip():
            found[key] = value.strip()
    return found


def cli_overrides(args) -> Dict[str, Any]:
    mapping = {
        "jobs": getattr(args, "JOBS", None),
        "retries": getattr(args, "RETRIES", None),
        "timeout": getattr(args, "TIMEOUT", None),
        "registry_url": getattr(args, "REGISTRY_URL", None),
        "download_url": getattr(args, "DOWNLOAD_URL", None),
        "cache_dir": getattr(args, "CACHE_DIR", None),
    }
    return {k: v for k, v in mapping.items() if v is not None}


def load_settings(args=None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from all sources in precedence order."""
    environ = os.environ if environ is None else environ
    settings = Settings()
    config_path = getattr(args, "CONFIG", None) if args is not None else None
    if config_path:
        settings = _apply(settings, load_config_file(config_path), config_path)
        logger.info("Loaded settings from: %s", config_path)
    settings = _apply(settings, env_overrides(environ), "environment")
    if args is not None:
        settings = _apply(settings, cli_overrides(args), "command line")
    return settings
