"""Configuration management for the role manager application.

This module provides utilities for loading and validating configuration
from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from rolemanager.store import (
    CachePolicy,
    ExportSink,
    FaultInjector,
    Latency,
    LogSink,
    RoleStore,
    SourceBackend,
    create_source,
)
from rolemanager.store.faults import valid_failure_rate
from rolemanager.view import PAGE_SIZE

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from rolemanager.store import PersistenceSink

LOGGER = logging.getLogger(__name__)

_DEFAULT_USERS_DELAY_MS = 800
_DEFAULT_ROLES_DELAY_MS = 300
_DEFAULT_UPDATE_DELAY_MS = 500
_DEFAULT_FAILURE_RATE = 0.05
_DEFAULT_HTTP_TIMEOUT = 10.0
_DEFAULT_DATA_DIRECTORY = "data"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})
_PERSIST_MODES = frozenset({"none", "log", "export"})


def configure_logging(app_config: AppConfig) -> None:
    """Configure logging based on the application configuration.

    :param app_config: The application configuration instance
    """
    if not app_config.logging_level:
        logging.basicConfig(level=logging.INFO)
        return

    numeric_level = getattr(logging, app_config.logging_level.upper(), None)
    if not isinstance(numeric_level, int):
        LOGGER.warning("Invalid log level: %s, using INFO", app_config.logging_level)
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level)


@dataclass
class AppConfig:
    """Holds application configuration loaded from environment variables."""

    logging_level: str | None
    root_path: str

    store_backend: str
    users_source: str | None
    roles_source: str | None
    http_timeout: float

    failure_rate: float
    fault_seed: int | None
    users_delay_ms: int
    roles_delay_ms: int
    update_delay_ms: int

    cache_policy: str
    write_back: bool
    persist: str
    export_path: str

    page_size: int

    def build_sinks(self) -> list[PersistenceSink]:
        """Create the persistence sinks selected by ``persist``."""
        if self.persist == "log":
            return [LogSink()]
        if self.persist == "export":
            return [ExportSink(self.export_path)]
        return []

    def build_store(self) -> RoleStore:
        """Create the data access layer described by this configuration."""
        source = create_source(
            self.store_backend,
            self.users_source,
            self.roles_source,
            timeout=self.http_timeout,
        )
        LOGGER.info("Using %s store backend", source.name)
        return RoleStore(
            source,
            faults=FaultInjector.seeded(self.failure_rate, self.fault_seed),
            latency=Latency.from_milliseconds(
                self.users_delay_ms,
                self.roles_delay_ms,
                self.update_delay_ms,
            ),
            cache_policy=CachePolicy(self.cache_policy),
            write_back=self.write_back,
            sinks=self.build_sinks(),
        )


def get_env_str(
    var_name: str,
    default: str | None,
    value_checker: Callable[[str], bool] | None = None,
) -> str:
    """Get an environment variable as a string with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value
    :raises ValueError: If the value does not meet the constraints
    """
    value = os.getenv(var_name, default)
    if value is None:
        msg = f"Environment variable {var_name} is required"
        raise ValueError(msg)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_optional_int(
    var_name: str,
    default: int | None,
    value_checker: Callable[[int], bool] | None = None,
) -> int | None:
    """Get an environment variable as an integer with optional constraints.

    To indicate None, set the environment variable to an empty string.
    To indicate the default, leave the environment variable unset.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as an integer
    :raises ValueError: If the value does not meet the constraints or is not an integer
    """
    value_str = os.getenv(var_name)
    if value_str is None:
        return default

    if value_str == "":
        return None

    return _parse_int(var_name, value_str, value_checker)


def get_env_int(
    var_name: str,
    default: int,
    value_checker: Callable[[int], bool] | None = None,
) -> int:
    """Get an environment variable as an integer with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as an integer
    :raises ValueError: If the value does not meet the constraints or is not an integer
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    return _parse_int(var_name, value_str, value_checker)


def _parse_int(
    var_name: str,
    value_str: str,
    value_checker: Callable[[int], bool] | None,
) -> int:
    if not value_str.lstrip("-").isnumeric():
        msg = f"Environment variable {var_name} must be an integer, got: {value_str}"
        raise ValueError(msg)

    value = int(value_str)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_float(
    var_name: str,
    default: float,
    value_checker: Callable[[float], bool] | None = None,
) -> float:
    """Get an environment variable as a float with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as a float
    :raises ValueError: If the value does not meet the constraints or is not a number
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    try:
        value = float(value_str)
    except ValueError as e:
        msg = f"Environment variable {var_name} must be a number, got: {value_str}"
        raise ValueError(msg) from e

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_bool(var_name: str, default: bool) -> bool:  # noqa: FBT001
    """Get an environment variable as a boolean.

    Accepts ``1/0``, ``true/false``, ``yes/no`` and ``on/off`` in any case.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :return: The environment variable value as a boolean
    :raises ValueError: If the value is not a recognised boolean
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    lowered = value_str.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False

    msg = f"Environment variable {var_name} must be a boolean, got: {value_str}"
    raise ValueError(msg)


def _is_backend(value: str) -> bool:
    return value.lower() in {backend.value for backend in SourceBackend}


def _is_cache_policy(value: str) -> bool:
    return value.lower() in {policy.value for policy in CachePolicy}


def _default_location(backend: str, collection: str) -> str | None:
    if backend.lower() == SourceBackend.MEMORY:
        return None
    return f"{_DEFAULT_DATA_DIRECTORY}/{collection}.{backend.lower()}"


def load_config_from_env(env_file: str | Path | None) -> AppConfig:
    """Load application configuration from environment variables.

    :param env_file: Optional ``.env`` file read before the environment
    :return: An AppConfig instance populated with environment variable values
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    store_backend = get_env_str("STORE_BACKEND", SourceBackend.MEMORY, _is_backend)

    return AppConfig(
        logging_level=get_env_str("LOGGING_LEVEL", "INFO"),
        root_path=get_env_str("ROOT_PATH", ""),
        store_backend=store_backend,
        users_source=os.getenv(
            "USERS_SOURCE",
            _default_location(store_backend, "users"),
        ),
        roles_source=os.getenv(
            "ROLES_SOURCE",
            _default_location(store_backend, "roles"),
        ),
        http_timeout=get_env_float(
            "HTTP_TIMEOUT",
            _DEFAULT_HTTP_TIMEOUT,
            lambda timeout: timeout > 0,
        ),
        failure_rate=get_env_float(
            "FAILURE_RATE",
            _DEFAULT_FAILURE_RATE,
            valid_failure_rate,
        ),
        fault_seed=get_env_optional_int("FAULT_SEED", None),
        users_delay_ms=get_env_int(
            "USERS_DELAY_MS",
            _DEFAULT_USERS_DELAY_MS,
            lambda delay: delay >= 0,
        ),
        roles_delay_ms=get_env_int(
            "ROLES_DELAY_MS",
            _DEFAULT_ROLES_DELAY_MS,
            lambda delay: delay >= 0,
        ),
        update_delay_ms=get_env_int(
            "UPDATE_DELAY_MS",
            _DEFAULT_UPDATE_DELAY_MS,
            lambda delay: delay >= 0,
        ),
        cache_policy=get_env_str(
            "CACHE_POLICY",
            CachePolicy.PATCH,
            _is_cache_policy,
        ).lower(),
        # the in-memory source only keeps updates when they are written back
        write_back=get_env_bool(
            "WRITE_BACK",
            store_backend.lower() == SourceBackend.MEMORY,
        ),
        persist=get_env_str(
            "PERSIST",
            "none",
            lambda mode: mode in _PERSIST_MODES,
        ),
        export_path=get_env_str("EXPORT_PATH", "users-export.json"),
        page_size=get_env_int("PAGE_SIZE", PAGE_SIZE, lambda size: size > 0),
    )
