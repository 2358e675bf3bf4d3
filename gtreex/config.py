from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

_SUPPORTED_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}
_DEFAULT_POOL_CAPACITY = 16


def _bool_from_env(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value '{value}'")


def _parse_optional_int(raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value '{raw}'") from exc


def _parse_capacity(raw: str | None) -> int:
    capacity = _parse_optional_int(raw)
    if capacity is None:
        return _DEFAULT_POOL_CAPACITY
    if capacity < 1:
        raise ValueError(f"Pool capacity must be positive, got {capacity}.")
    return capacity


def _normalise_log_level(value: str | None) -> str:
    if value is None:
        return "INFO"
    value = value.strip().upper()
    if value not in _SUPPORTED_LOG_LEVELS:
        raise ValueError(f"Unsupported log level '{value}'. Expected one of {_SUPPORTED_LOG_LEVELS}.")
    return value


@dataclass(frozen=True)
class RuntimeConfig:
    log_level: str
    pool_capacity: int
    pool_growable: bool
    pool_max_capacity: int | None
    validate_mutations: bool

    @property
    def bounded(self) -> bool:
        return not self.pool_growable or self.pool_max_capacity is not None


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("gtreex")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)


@lru_cache(maxsize=None)
def runtime_config() -> RuntimeConfig:
    log_level = _normalise_log_level(os.getenv("GTREEX_LOG_LEVEL"))
    pool_capacity = _parse_capacity(os.getenv("GTREEX_POOL_CAPACITY"))
    pool_growable = _bool_from_env(os.getenv("GTREEX_POOL_GROWABLE"), default=True)
    pool_max_capacity = _parse_optional_int(os.getenv("GTREEX_POOL_MAX_CAPACITY"))
    if pool_max_capacity is not None and pool_max_capacity < pool_capacity:
        raise ValueError(
            f"GTREEX_POOL_MAX_CAPACITY ({pool_max_capacity}) is below the initial capacity ({pool_capacity})."
        )
    validate_mutations = _bool_from_env(os.getenv("GTREEX_VALIDATE"), default=False)

    config = RuntimeConfig(
        log_level=log_level,
        pool_capacity=pool_capacity,
        pool_growable=pool_growable,
        pool_max_capacity=pool_max_capacity,
        validate_mutations=validate_mutations,
    )
    _configure_logging(config.log_level)
    return config


def reset_runtime_config_cache() -> None:
    runtime_config.cache_clear()
