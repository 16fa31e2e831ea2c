"""Data types shared across the health check run."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Service name of the unnamed instance; also what SQL Server reports for it.
DEFAULT_INSTANCE = "MSSQLSERVER"

NOT_AVAILABLE = "N/A"


class InstanceStatus(Enum):
    """Outcome of the availability probe for one instance."""
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    ERROR = "Error"


class QueryStatus(Enum):
    """Outcome of a single catalog query."""
    ROWS = "rows"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class InstanceRef:
    """A database instance on a host."""
    server: str
    instance: str

    @property
    def is_default(self) -> bool:
        return self.instance == DEFAULT_INSTANCE

    @property
    def target(self) -> str:
        """Connection target: bare server for the default instance."""
        if self.is_default:
            return self.server
        return f"{self.server}\\{self.instance}"

    def __str__(self) -> str:
        return self.target


@dataclass(frozen=True)
class ServiceEntry:
    """One row of the host's service listing."""
    name: str
    display_name: str


@dataclass
class QueryResult:
    """Typed result of one statement: rows, empty, or failed with a cause."""
    status: QueryStatus
    rows: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, rows: List[Dict[str, Any]]) -> 'QueryResult':
        rows = list(rows)
        return cls(QueryStatus.ROWS if rows else QueryStatus.EMPTY, rows)

    @classmethod
    def failure(cls, error: str) -> 'QueryResult':
        return cls(QueryStatus.FAILED, error=error)

    @property
    def failed(self) -> bool:
        return self.status is QueryStatus.FAILED

    @property
    def has_rows(self) -> bool:
        return self.status is QueryStatus.ROWS

    def first(self) -> Dict[str, Any]:
        """Return the first row; only valid on a result with rows."""
        if not self.has_rows:
            raise LookupError(f"No rows available (status: {self.status.value})")
        return self.rows[0]


@dataclass(frozen=True)
class SummaryRecord:
    """Per-instance line of the end-of-run summary."""
    server: str
    instance: str
    status: InstanceStatus
    version: str = NOT_AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server": self.server,
            "instance": self.instance,
            "status": self.status.value,
            "version": self.version,
        }

    def format_line(self) -> str:
        return (
            f"Server: {self.server} | Instance: {self.instance} | "
            f"Status: {self.status.value} | Version: {self.version}"
        )


@dataclass
class RunReport:
    """Result of one complete pass over a server."""
    server: str
    log_file: Optional[str]
    instances: List[str] = field(default_factory=list)
    summary: List[SummaryRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "server": self.server,
            "log_file": self.log_file,
            "instances": list(self.instances),
            "summary": [record.to_dict() for record in self.summary],
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)
