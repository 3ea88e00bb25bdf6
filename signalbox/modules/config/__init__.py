"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), ConfigModule.get(), ConfigModule.get_config_schema()
Hidden: Config sources, validation logic, environment parsing

Can be replaced with a different config system without touching the relay.
"""

import os
from typing import Any, Dict, List, Optional


# Configuration Contract: Required and Optional Keys
# This defines the black box interface - what the config module guarantees to provide

REQUIRED_CONFIG_KEYS = {
    "host": "Server bind address",
    "port": "Server port (HTTP and WebSocket share it)",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
    "sweep_interval": "Seconds between expiry sweeps",
    "session_max_age": "Seconds a session may live before the reaper evicts it",
    "send_timeout": "Seconds a single outbound send may take before it is dropped",
}

OPTIONAL_CONFIG_KEYS = {
    "static_dir": {
        "description": "Directory with the client application to serve at /",
        "default": None,
    },
    "cors_origins": {
        "description": "Allowed CORS origins",
        "default": ["*"],
    },
    "notify_on_expiry": {
        "description": "Send session-expired to connected endpoints when the reaper evicts their session",
        "default": False,
    },
    "debug": {
        "description": "Enable debug mode",
        "default": False,
    },
}

POSITIVE_KEYS = ("sweep_interval", "session_max_age", "send_timeout")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _parse_port(value: str) -> int:
    # Container platforms may inject PORT as tcp://host:port
    if value.startswith("tcp://"):
        value = value.split(":")[-1]
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid port value: {value!r}") from None


def _parse_number(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {value!r}") from None


class ConfigModule:
    """Configuration management module."""

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize from environment variables.

        Args:
            overrides: Optional values applied on top of the environment
                (used by the CLI and tests)
        """
        self._config = self._load_from_env()
        if overrides:
            self._config.update(overrides)
        self._validate_required_keys()
        self._validate_values()

    def _validate_required_keys(self) -> None:
        """
        Validate that all required configuration keys are present.

        Raises:
            ValueError: If required keys are missing
        """
        missing_keys = []
        for key in REQUIRED_CONFIG_KEYS:
            if key not in self._config or self._config[key] is None:
                missing_keys.append(key)

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables and deployment configuration."
            )

    def _validate_values(self) -> None:
        for key in POSITIVE_KEYS:
            if self._config[key] <= 0:
                raise ValueError(f"{key} must be positive, got {self._config[key]}")

        if not 0 < self._config["port"] < 65536:
            raise ValueError(f"port out of range: {self._config['port']}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment."""
        cors_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        return {
            # Server settings
            "host": os.getenv("HOST", "0.0.0.0"),
            "port": _parse_port(os.getenv("PORT", "3000")),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "debug": _env_flag("DEBUG"),
            "static_dir": os.getenv("STATIC_DIR") or None,
            "cors_origins": cors_origins or ["*"],
            # Session settings
            "sweep_interval": _parse_number("SWEEP_INTERVAL", os.getenv("SWEEP_INTERVAL", "300")),
            "session_max_age": _parse_number(
                "SESSION_MAX_AGE", os.getenv("SESSION_MAX_AGE", "3600")
            ),
            "send_timeout": _parse_number("SEND_TIMEOUT", os.getenv("SEND_TIMEOUT", "5")),
            "notify_on_expiry": _env_flag("NOTIFY_ON_EXPIRY"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._config[key] = value

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration schema (contract) for this module.

        Returns:
            Dictionary with 'required' and 'optional' key specifications

        Example:
            >>> schema = ConfigModule.get_config_schema()
            >>> print(schema['required']['port'])
            'Server port (HTTP and WebSocket share it)'
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


def reset_config() -> None:
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _instance
    _instance = None
