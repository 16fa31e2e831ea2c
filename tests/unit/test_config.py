"""
Unit tests for configuration loading.
"""

import json

import pytest
from unittest.mock import patch

from mssql_health.config import (
    DEFAULT_LOG_DIRECTORY,
    ConnectionConfig,
    HealthCheckConfig,
    LogLevel,
    load_config,
)
from mssql_health.exceptions import ConfigurationError


class TestConfigModule:
    """Test configuration module functionality."""

    def test_log_level_enum(self):
        assert LogLevel.DEBUG.value == "DEBUG"
        assert LogLevel.INFO.value == "INFO"
        assert LogLevel.WARNING.value == "WARNING"
        assert LogLevel.ERROR.value == "ERROR"

    def test_defaults(self):
        config = HealthCheckConfig(server="db01")
        assert config.connection.database == "master"
        assert config.discovery.service_prefix == "MSSQL"
        assert config.discovery.default_service == "MSSQLSERVER"
        assert config.discovery.instance_separator == "$"
        assert config.logging.directory == DEFAULT_LOG_DIRECTORY
        config.validate()

    def test_pymssql_params(self):
        params = ConnectionConfig(query_timeout=30).get_pymssql_params("db01\\AG1")
        assert params == {
            'server': "db01\\AG1",
            'database': "master",
            'login_timeout': 60,
            'timeout': 30,
            'charset': "UTF-8",
            'as_dict': True
        }

    def test_from_environment(self):
        env = {
            "MSSQL_HEALTH_SERVER": "db01",
            "MSSQL_HEALTH_LOG_DIR": "/tmp/health",
            "MSSQL_HEALTH_LOGIN_TIMEOUT": "10",
            "MSSQL_HEALTH_ECHO_CONSOLE": "true",
        }
        with patch.dict("os.environ", env, clear=True):
            config = HealthCheckConfig.from_environment()

        assert config.server == "db01"
        assert config.logging.directory == "/tmp/health"
        assert config.logging.echo_console is True
        assert config.connection.login_timeout == 10

    def test_profile_overrides_plain_variables(self):
        env = {"MSSQL_HEALTH_SERVER": "db01", "PROD_MSSQL_HEALTH_SERVER": "prod-db01"}
        with patch.dict("os.environ", env, clear=True):
            assert HealthCheckConfig.from_environment("prod").server == "prod-db01"
            assert HealthCheckConfig.from_environment().server == "db01"

    def test_from_file(self, tmp_path):
        path = tmp_path / "health.json"
        path.write_text(json.dumps({
            "server": "db01",
            "connection": {"login_timeout": 5},
            "logging": {"directory": str(tmp_path), "level": "warning"}
        }), encoding="utf-8")

        config = HealthCheckConfig.from_file(str(path))

        assert config.server == "db01"
        assert config.connection.login_timeout == 5
        assert config.logging.level is LogLevel.WARNING
        assert config.discovery.default_service == "MSSQLSERVER"

    def test_from_file_unknown_key(self, tmp_path):
        path = tmp_path / "health.json"
        path.write_text(json.dumps({"server": "db01", "connection": {"username": "sa"}}), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            HealthCheckConfig.from_file(str(path))

    def test_from_file_coerces_numeric_strings(self, tmp_path):
        path = tmp_path / "health.json"
        path.write_text(json.dumps({
            "server": "db01",
            "connection": {"login_timeout": "30"},
            "logging": {"echo_console": "true"}
        }), encoding="utf-8")

        config = HealthCheckConfig.from_file(str(path))

        assert config.connection.login_timeout == 30
        assert config.logging.echo_console is True
        config.validate()

    @pytest.mark.parametrize("payload", [
        ["db01"],
        {"server": 42},
        {"server": "db01", "connection": ["master"]},
        {"server": "db01", "connection": {"login_timeout": "soon"}},
        {"server": "db01", "connection": {"login_timeout": True}},
        {"server": "db01", "discovery": {"service_prefix": 7}},
        {"server": "db01", "logging": {"level": "LOUD"}},
    ])
    def test_from_file_rejects_wrong_types(self, tmp_path, payload):
        path = tmp_path / "health.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            HealthCheckConfig.from_file(str(path))

    def test_validate_collects_errors(self):
        config = HealthCheckConfig(server="")
        config.connection.login_timeout = 0
        config.discovery.default_service = "SQLSERVER"

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()

        message = str(exc_info.value)
        assert "Target server is required" in message
        assert "login_timeout must be positive" in message
        assert "default_service must start with service_prefix" in message


class TestLoadConfig:

    def test_overrides_win(self, tmp_path):
        with patch.dict("os.environ", {"MSSQL_HEALTH_SERVER": "db01"}, clear=True):
            config = load_config(server="db02", log_directory=tmp_path, echo_console=True)

        assert config.server == "db02"
        assert config.logging.directory == str(tmp_path)
        assert config.logging.echo_console is True

    def test_none_overrides_are_ignored(self):
        with patch.dict("os.environ", {"MSSQL_HEALTH_SERVER": "db01"}, clear=True):
            config = load_config(server=None, log_directory=None, echo_console=None)

        assert config.server == "db01"
        assert config.logging.directory == DEFAULT_LOG_DIRECTORY

    def test_missing_server(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ConfigurationError, match="Target server is required"):
                load_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(config_file=str(tmp_path / "missing.json"), server="db01")

    def test_bad_environment_value(self):
        with patch.dict("os.environ", {"MSSQL_HEALTH_LOGIN_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ConfigurationError):
                load_config(server="db01")
