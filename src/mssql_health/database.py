"""Query execution against a single SQL Server instance."""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

import pymssql

from .config import ConnectionConfig
from .exceptions import DatabaseError
from .models import InstanceRef, QueryResult
from .session_log import SessionLog

logger = logging.getLogger(__name__)


def resolve_target(server: str, instance: str) -> str:
    """Connection target: ``server`` for the default instance, else ``server\\instance``."""
    return InstanceRef(server, instance).target


class QueryExecutor:
    """Runs one statement per connection; nothing is pooled or reused."""

    def __init__(self, session_log: SessionLog, config: Optional[ConnectionConfig] = None,
                 connect: Optional[Callable[..., Any]] = None):
        """
        Initialize the executor.

        Args:
            session_log: Run log receiving connection and query failures
            config: Connection settings
            connect: DB-API connect callable, pymssql.connect by default
        """
        self.session_log = session_log
        self.config = config or ConnectionConfig()
        self._connect = connect or pymssql.connect

    @contextmanager
    def get_connection(self, target: str):
        """
        Context manager for a short-lived connection to ``target``.

        Raises:
            DatabaseError: If the connection cannot be opened
        """
        conn = None
        try:
            logger.debug(f"Connecting to {target}")
            conn = self._connect(**self.config.get_pymssql_params(target))
        except Exception as e:
            raise DatabaseError(f"Failed to connect to {target}: {e}")

        try:
            yield conn
        finally:
            try:
                conn.close()
            except Exception as e:
                logger.warning(f"Error closing connection to {target}: {e}")

    def _fetch_rows(self, target: str, query: str) -> List[Dict[str, Any]]:
        with self.get_connection(target) as conn:
            try:
                cursor = conn.cursor()
                try:
                    cursor.execute(query)
                    columns = [desc[0] for desc in cursor.description] if cursor.description else []
                    rows = cursor.fetchall() if columns else []
                finally:
                    cursor.close()
            except Exception as e:
                raise DatabaseError(f"Query failed on {target}: {e}")

        return [row if isinstance(row, dict) else dict(zip(columns, row)) for row in rows]

    def execute(self, server: str, instance: str, query: str) -> QueryResult:
        """
        Execute ``query`` on the instance and materialize all rows.

        Returns:
            QueryResult with rows, empty, or failed carrying the error text
        """
        target = resolve_target(server, instance)
        try:
            rows = self._fetch_rows(target, query)
        except DatabaseError as e:
            self.session_log.error(f"Query error on server '{server}', instance '{instance}': {e}")
            return QueryResult.failure(str(e))

        logger.debug(f"{target}: query returned {len(rows)} rows")
        return QueryResult.success(rows)
