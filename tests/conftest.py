"""
Pytest configuration and fixtures for the SQL Server health check tests.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import pytest
from unittest.mock import MagicMock

from mssql_health.models import QueryResult, ServiceEntry
from mssql_health.session_log import SessionLog


class FakeExecutor:
    """Query executor answering from a table of canned results."""

    def __init__(self, responses=None):
        # {instance: {query: QueryResult}}; unknown queries return no rows
        self.responses = responses or {}
        self.calls = []

    def execute(self, server, instance, query):
        self.calls.append((server, instance, query))
        result = self.responses.get(instance, {}).get(query)
        if isinstance(result, Exception):
            raise result
        return result if result is not None else QueryResult.success([])

    def queries_for(self, instance):
        return [query for _, called_instance, query in self.calls if called_instance == instance]


class FakeEnumerator:
    """Service enumerator returning a fixed list, or raising."""

    def __init__(self, services=None, error=None):
        self.services = services or []
        self.error = error
        self.servers = []

    def list_services(self, server):
        self.servers.append(server)
        if self.error is not None:
            raise self.error
        return list(self.services)


def read_lines(session_log):
    session_log.close()
    return session_log.log_file.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def session_log(tmp_path):
    """A session log writing into a temporary directory."""
    log = SessionLog(tmp_path / "session.log")
    yield log
    log.close()


@pytest.fixture
def fake_executor():
    return FakeExecutor


@pytest.fixture
def fake_enumerator():
    return FakeEnumerator


@pytest.fixture
def log_lines():
    return read_lines


@pytest.fixture
def instance_services():
    """Service listing of a host with a default and two named instances."""
    return [
        ServiceEntry("MSSQLSERVER", "SQL Server (MSSQLSERVER)"),
        ServiceEntry("MSSQL$AG1", "SQL Server (AG1)"),
        ServiceEntry("MSSQLFDLauncher", "SQL Full-text Filter Daemon Launcher (MSSQLSERVER)"),
        ServiceEntry("MSSQLServerOLAPService", "SQL Server Analysis Services (MSSQLSERVER)"),
        ServiceEntry("MSSQL$AG2", "SQL Server (AG2)"),
        ServiceEntry("SQLSERVERAGENT", "SQL Server Agent (MSSQLSERVER)"),
        ServiceEntry("Spooler", "Print Spooler"),
    ]


@pytest.fixture
def mock_connection():
    """A pymssql-like connection whose cursor returns dict rows."""
    connection = MagicMock()
    cursor = MagicMock()
    cursor.description = [("Version",)]
    cursor.fetchall.return_value = [{"Version": "Microsoft SQL Server 2019 (RTM) - 15.0.2000.5\n\tCopyright"}]
    connection.cursor.return_value = cursor
    return connection
