"""
Configuration management for the SQL Server health check.
Provides structured configuration with environment variable and JSON file support.
"""

import os
import json
import logging
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIRECTORY = r"C:\Logs\SQLHealthCheck"
ENV_PREFIX = "MSSQL_HEALTH_"


class LogLevel(Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class ConnectionConfig:
    """Per-instance connection settings (integrated authentication only)."""
    database: str = "master"
    login_timeout: int = 60
    query_timeout: int = 0
    charset: str = "UTF-8"

    def get_pymssql_params(self, target: str) -> Dict[str, Any]:
        """Get connection parameters for pymssql.

        No user or password is passed, so the driver uses the
        Windows credentials of the running process.
        """
        return {
            'server': target,
            'database': self.database,
            'login_timeout': self.login_timeout,
            'timeout': self.query_timeout,
            'charset': self.charset,
            'as_dict': True
        }


@dataclass
class DiscoveryConfig:
    """Service naming convention and enumeration settings."""
    service_prefix: str = "MSSQL"
    default_service: str = "MSSQLSERVER"
    instance_separator: str = "$"
    display_label: str = "SQL Server ("
    powershell: str = "powershell"
    timeout: int = 60


@dataclass
class LoggingConfig:
    """Session log settings."""
    directory: str = DEFAULT_LOG_DIRECTORY
    echo_console: bool = False
    level: LogLevel = LogLevel.INFO


def _section_values(config_data: Dict[str, Any], name: str, section_cls) -> Dict[str, Any]:
    """Read one section of a JSON config, coercing values to the field types."""
    data = config_data.get(name, {})
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{name}' section must be a JSON object")

    field_types = {f.name: f.type for f in fields(section_cls)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        expected = field_types.get(key)
        try:
            if expected is bool:
                values[key] = value if isinstance(value, bool) else str(value).strip().lower() == "true"
            elif expected is int:
                if isinstance(value, bool):
                    raise ValueError(value)
                values[key] = int(value)
            elif expected is str:
                if not isinstance(value, str):
                    raise ValueError(value)
                values[key] = value
            elif expected is LogLevel:
                values[key] = LogLevel(str(value).upper())
            else:
                # Unknown keys are left for the dataclass to reject
                values[key] = value
        except (TypeError, ValueError):
            raise ConfigurationError(f"'{name}.{key}' has an invalid value: {value!r}")
    return values


@dataclass
class HealthCheckConfig:
    """Application configuration combining all components."""
    server: str = ""
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_environment(cls, profile: Optional[str] = None) -> 'HealthCheckConfig':
        """Load configuration from environment variables."""
        profile_prefix = f"{profile.upper()}_" if profile else ""

        def env(name: str, default: str) -> str:
            return os.getenv(f"{profile_prefix}{ENV_PREFIX}{name}", os.getenv(f"{ENV_PREFIX}{name}", default))

        connection = ConnectionConfig(
            database=env("DATABASE", "master"),
            login_timeout=int(env("LOGIN_TIMEOUT", "60")),
            query_timeout=int(env("QUERY_TIMEOUT", "0")),
            charset=env("CHARSET", "UTF-8")
        )

        discovery = DiscoveryConfig(
            service_prefix=env("SERVICE_PREFIX", "MSSQL"),
            default_service=env("DEFAULT_SERVICE", "MSSQLSERVER"),
            instance_separator=env("INSTANCE_SEPARATOR", "$"),
            display_label=env("DISPLAY_LABEL", "SQL Server ("),
            powershell=env("POWERSHELL", "powershell"),
            timeout=int(env("DISCOVERY_TIMEOUT", "60"))
        )

        logging_config = LoggingConfig(
            directory=env("LOG_DIR", DEFAULT_LOG_DIRECTORY),
            echo_console=env("ECHO_CONSOLE", "false").lower() == "true",
            level=LogLevel(env("LOG_LEVEL", "INFO").upper())
        )

        return cls(
            server=env("SERVER", ""),
            connection=connection,
            discovery=discovery,
            logging=logging_config
        )

    @classmethod
    def from_file(cls, config_path: str) -> 'HealthCheckConfig':
        """Load configuration from JSON file."""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = json.load(f)

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Invalid configuration file {config_path}: expected a JSON object, got {type(config_data).__name__}"
            )

        server = config_data.get('server', "")
        if not isinstance(server, str):
            raise ConfigurationError(f"Invalid configuration file {config_path}: 'server' must be a string")

        try:
            return cls(
                server=server,
                connection=ConnectionConfig(**_section_values(config_data, 'connection', ConnectionConfig)),
                discovery=DiscoveryConfig(**_section_values(config_data, 'discovery', DiscoveryConfig)),
                logging=LoggingConfig(**_section_values(config_data, 'logging', LoggingConfig))
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration file {config_path}: {e}")

    def apply_overrides(self, **overrides: Any) -> 'HealthCheckConfig':
        """Apply non-None command line overrides in place and return self."""
        if overrides.get('server'):
            self.server = overrides['server']
        if overrides.get('log_directory'):
            self.logging.directory = str(overrides['log_directory'])
        if overrides.get('echo_console') is not None:
            self.logging.echo_console = bool(overrides['echo_console'])
        return self

    def validate(self) -> None:
        """Validate configuration settings."""
        errors: List[str] = []

        if not self.server or not self.server.strip():
            errors.append("Target server is required")
        if not self.connection.database:
            errors.append("Connection database is required")
        if self.connection.login_timeout <= 0:
            errors.append("login_timeout must be positive")
        if self.connection.query_timeout < 0:
            errors.append("query_timeout must be non-negative")

        if not self.discovery.service_prefix:
            errors.append("service_prefix is required")
        if not self.discovery.default_service.startswith(self.discovery.service_prefix):
            errors.append("default_service must start with service_prefix")
        if not self.discovery.instance_separator:
            errors.append("instance_separator is required")
        if self.discovery.timeout <= 0:
            errors.append("discovery timeout must be positive")

        if not self.logging.directory:
            errors.append("Log directory is required")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")


def load_config(profile: Optional[str] = None, config_file: Optional[str] = None,
                **overrides: Any) -> HealthCheckConfig:
    """
    Load application configuration.

    Args:
        profile: Configuration profile name (e.g., 'dev', 'prod')
        config_file: Path to configuration file (JSON)
        **overrides: Command line values (server, log_directory, echo_console)

    Returns:
        HealthCheckConfig: Loaded and validated configuration

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    try:
        if config_file:
            logger.info(f"Loading configuration from file: {config_file}")
            config = HealthCheckConfig.from_file(config_file)
        else:
            logger.debug(f"Loading configuration from environment (profile: {profile or 'default'})")
            config = HealthCheckConfig.from_environment(profile)
    except (ValueError, OSError) as e:
        logger.error(f"Failed to load configuration: {e}")
        raise ConfigurationError(f"Failed to load configuration: {e}")

    config.apply_overrides(**overrides)
    config.validate()
    logger.debug("Configuration loaded and validated successfully")
    return config
