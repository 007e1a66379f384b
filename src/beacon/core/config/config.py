"""
Static configuration management for Beacon.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. Values are read
once at startup; nothing here changes while the bot is running.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment and which from defaults

Non-Responsibilities
--------------------
- Secrets (the Discord token is read through SecretsManager)
- Logging setup (handled by beacon.core.logging)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.load()
- Directory paths are relative to the project root for portability

Configuration Categories
------------------------
1. Environment: environment type, debug mode, logging
2. Commands: command module package and load timeout
3. Lifecycle: guild command deletion pacing and timeout
4. Interactions: response safety window
5. Gateway: level of discord.py diagnostics bridged into our logs
6. Secrets: location of the local secrets file

Environment Variables
---------------------
All optional (with defaults):
- ENVIRONMENT: Environment type (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console output (default: production only)
- LOG_TO_FILE: Enable the daily rotating JSON log file (default: True)
- COMMAND_PACKAGE: Package that holds command modules (default: beacon.modules)
- MODULE_LOAD_TIMEOUT_SECONDS: Per-module setup timeout (default: 30)
- GUILD_COMMAND_DELETE_DELAY_SECONDS: Pause between guild deletions (default: 1.0)
- GUILD_COMMAND_DELETE_TIMEOUT_SECONDS: Per-guild deletion timeout (default: 10.0)
- RESPONSE_SAFETY_WINDOW_SECONDS: Fallback response cut-off (default: 2.0)
- GATEWAY_LOG_LEVEL: Minimum discord.py record level (default: INFO)
- BEACON_SECRETS_FILE: dotenv-style secrets file (default: secrets.env)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Enums and Constants
# ============================================================================


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized this early
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, value: Any, default: Any):
        """Record whether a config value came from environment."""
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the Beacon bot.

    Usage
    -----
    >>> Config.COMMAND_PACKAGE
    'beacon.modules'
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    # =========================================================================
    # Internal State
    # =========================================================================

    _metrics: Optional[_ConfigLoadMetrics] = None
    _enable_metrics: bool = True
    _validated: bool = False

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_TO_FILE: bool = True

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[4]
    LOGS_DIR = PROJECT_ROOT / "logs"

    # =========================================================================
    # Bot Metadata
    # =========================================================================

    BOT_NAME: str = "Beacon"
    BOT_VERSION: str = "1.0.0"

    # =========================================================================
    # Commands
    # =========================================================================

    COMMAND_PACKAGE: str = "beacon.modules"
    MODULE_LOAD_TIMEOUT_SECONDS: float = 30.0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    # Guild deletions run one at a time to stay clear of platform rate limits
    GUILD_COMMAND_DELETE_DELAY_SECONDS: float = 1.0
    GUILD_COMMAND_DELETE_TIMEOUT_SECONDS: float = 10.0

    # =========================================================================
    # Interactions
    # =========================================================================

    # Discord expires an unanswered interaction 3 seconds after creation
    RESPONSE_SAFETY_WINDOW_SECONDS: float = 2.0

    # =========================================================================
    # Gateway
    # =========================================================================

    GATEWAY_LOG_LEVEL: str = "INFO"

    # =========================================================================
    # Secrets
    # =========================================================================

    SECRETS_FILE: str = "secrets.env"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        """Initialize metrics tracking if enabled."""
        if cls._enable_metrics and cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Parameters
        ----------
        key:
            Environment variable name.
        default:
            Default value if not set or invalid.
        min_val:
            Minimum allowed value (inclusive).
        max_val:
            Maximum allowed value (inclusive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            error = f"{key}='{raw_value}' is not a valid integer, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        return cls._check_bounds(key, value, default, min_val, max_val)

    @classmethod
    def _safe_float(
        cls,
        key: str,
        default: float,
        min_val: Optional[float] = None,
        max_val: Optional[float] = None,
    ) -> float:
        """
        Safely parse float from environment with validation.

        Example
        -------
        >>> Config._safe_float("RESPONSE_SAFETY_WINDOW_SECONDS", 2.0, min_val=0.0)
        2.0
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = float(raw_value)
        except ValueError:
            error = f"{key}='{raw_value}' is not a valid number, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        return cls._check_bounds(key, value, default, min_val, max_val)

    @classmethod
    def _check_bounds(cls, key: str, value, default, min_val, max_val):
        if min_val is not None and value < min_val:
            error = f"{key}={value} is below minimum {min_val}, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if max_val is not None and value > max_val:
            error = f"{key}={value} exceeds maximum {max_val}, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        normalized = raw_value.lower().strip()
        true_values = {"true", "yes", "1", "on"}
        false_values = {"false", "no", "0", "off"}

        if normalized in true_values:
            value = True
        elif normalized in false_values:
            value = False
        else:
            error = f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            logging.warning(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)

        return value

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        """Safely get string from environment."""
        cls._init_metrics()

        value = os.getenv(key, default)
        from_env = key in os.environ

        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, value, default)

        return value

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; call again after changing the
        environment (tests do this through monkeypatch).
        """
        cls._init_metrics()

        # Environment Configuration
        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.DEBUG = cls._safe_bool("DEBUG", False)
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_TO_FILE = cls._safe_bool("LOG_TO_FILE", True)
        logs_dir = os.getenv("LOGS_DIR")
        cls.LOGS_DIR = Path(logs_dir) if logs_dir else cls.PROJECT_ROOT / "logs"

        # Commands
        cls.COMMAND_PACKAGE = cls._safe_str("COMMAND_PACKAGE", "beacon.modules")
        cls.MODULE_LOAD_TIMEOUT_SECONDS = cls._safe_float(
            "MODULE_LOAD_TIMEOUT_SECONDS", 30.0, min_val=1.0, max_val=600.0
        )

        # Lifecycle
        cls.GUILD_COMMAND_DELETE_DELAY_SECONDS = cls._safe_float(
            "GUILD_COMMAND_DELETE_DELAY_SECONDS", 1.0, min_val=0.0, max_val=60.0
        )
        cls.GUILD_COMMAND_DELETE_TIMEOUT_SECONDS = cls._safe_float(
            "GUILD_COMMAND_DELETE_TIMEOUT_SECONDS", 10.0, min_val=0.5, max_val=300.0
        )

        # Interactions (must stay below Discord's 3 second limit)
        cls.RESPONSE_SAFETY_WINDOW_SECONDS = cls._safe_float(
            "RESPONSE_SAFETY_WINDOW_SECONDS", 2.0, min_val=0.0, max_val=3.0
        )

        # Gateway
        cls.GATEWAY_LOG_LEVEL = cls._safe_str("GATEWAY_LOG_LEVEL", "INFO")

        # Secrets
        cls.SECRETS_FILE = cls._safe_str("BEACON_SECRETS_FILE", "secrets.env")

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Invalid log levels fall back to INFO; nothing here is fatal because
        the only required value (the token) is a secret.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.GATEWAY_LOG_LEVEL.upper() not in valid_log_levels:
            logger.warning(f"Invalid GATEWAY_LOG_LEVEL '{cls.GATEWAY_LOG_LEVEL}', using INFO")
            cls.GATEWAY_LOG_LEVEL = "INFO"

        if cls.is_production() and cls.DEBUG:
            logger.warning("DEBUG mode enabled in production!")

        cls._validated = True

        if cls._metrics:
            logger.info(f"Configuration loaded: {cls._metrics.get_summary()}")
            if cls._metrics.validation_errors:
                logger.warning(f"Configuration warnings: {cls._metrics.validation_errors}")

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def environment(cls) -> Environment:
        return Environment.from_string(cls.ENVIRONMENT)

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """
        Get non-sensitive configuration summary for debugging.

        Example
        -------
        >>> Config.get_config_summary()["command_package"]
        'beacon.modules'
        """
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "bot_version": cls.BOT_VERSION,
            "command_package": cls.COMMAND_PACKAGE,
            "guild_delete_delay_seconds": cls.GUILD_COMMAND_DELETE_DELAY_SECONDS,
            "guild_delete_timeout_seconds": cls.GUILD_COMMAND_DELETE_TIMEOUT_SECONDS,
            "response_safety_window_seconds": cls.RESPONSE_SAFETY_WINDOW_SECONDS,
            "gateway_log_level": cls.GATEWAY_LOG_LEVEL,
        }


# Auto-load on import
Config.load()
