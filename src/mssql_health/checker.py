"""Per-instance health checks.

Each instance goes through the same fixed sequence:

1. availability (version) probe, the only step that can end the sequence early
2. availability group capability probe, listing replica roles and health
3. availability group database synchronization (only when HADR is enabled)
4. standalone databases

A failure in steps 2-4 is written to the session log and the remaining
steps still run, so a partially broken instance yields partial results.
"""

import logging
from typing import Any, Callable, List

from . import queries
from .models import NOT_AVAILABLE, InstanceStatus, SummaryRecord
from .session_log import SessionLog

logger = logging.getLogger(__name__)


def extract_version(row: dict) -> str:
    """First line of ``@@VERSION``; raises KeyError if the column is missing."""
    version = str(row["Version"]).strip()
    return version.splitlines()[0].strip() if version else NOT_AVAILABLE


def is_flag_set(value: Any) -> bool:
    """SERVERPROPERTY flags come back as 1, 0 or NULL."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() in ("1", "true", "True")
    return bool(int(value))


class InstanceChecker:
    """Runs the check sequence for one instance at a time."""

    def __init__(self, executor, session_log: SessionLog):
        self.executor = executor
        self.session_log = session_log

    def check(self, server: str, instance: str, summary: List[SummaryRecord]) -> List[SummaryRecord]:
        """
        Check one instance and append exactly one record to ``summary``.

        Args:
            server: Host name or address
            instance: Instance name or the default instance sentinel
            summary: Records accumulated so far in this run

        Returns:
            The same summary list, with this instance's record appended
        """
        self.session_log.info(f"Checking server '{server}', instance '{instance}'")

        if not self.check_availability(server, instance, summary):
            return summary

        try:
            hadr_enabled = self.check_replication(server, instance)
        except Exception as e:
            logger.debug("Availability group probe failed", exc_info=True)
            self.session_log.error(f"Error checking availability groups on {server}\\{instance}: {e}")
            return summary

        if hadr_enabled:
            self._run_step("availability group databases", self.check_ag_databases, server, instance)
        self._run_step("standalone databases", self.check_standalone_databases, server, instance)
        return summary

    def _run_step(self, label: str, step: Callable[[str, str], None], server: str, instance: str) -> None:
        try:
            step(server, instance)
        except Exception as e:
            logger.debug(f"Step '{label}' failed", exc_info=True)
            self.session_log.error(f"Error checking {label} on {server}\\{instance}: {e}")

    def check_availability(self, server: str, instance: str, summary: List[SummaryRecord]) -> bool:
        """Probe the version; record the instance as Available, Unavailable or Error."""
        try:
            result = self.executor.execute(server, instance, queries.VERSION_QUERY)
            if not result.has_rows:
                self.session_log.warning(f"Server: {server}, Instance: {instance} - Unavailable")
                summary.append(SummaryRecord(server, instance, InstanceStatus.UNAVAILABLE, NOT_AVAILABLE))
                return False

            version = extract_version(result.first())
        except Exception as e:
            logger.debug("Availability probe failed", exc_info=True)
            self.session_log.error(f"Server: {server}, Instance: {instance} - Error checking availability: {e}")
            summary.append(SummaryRecord(server, instance, InstanceStatus.ERROR, NOT_AVAILABLE))
            return False

        self.session_log.info(f"Server: {server}, Instance: {instance} - Available, Version: {version}")
        summary.append(SummaryRecord(server, instance, InstanceStatus.AVAILABLE, version))
        return True

    def check_replication(self, server: str, instance: str) -> bool:
        """
        Probe whether availability groups are enabled and list replica roles.

        Returns:
            True when HADR is enabled, so the AG database check should run
        """
        flag = self.executor.execute(server, instance, queries.HADR_ENABLED_QUERY)
        if flag.failed:
            self.session_log.warning(
                f"Server: {server}, Instance: {instance} - Unable to determine whether Availability Groups are enabled"
            )
            return False

        if not flag.has_rows or not is_flag_set(flag.first().get("IsHadrEnabled")):
            self.session_log.info(f"Server: {server}, Instance: {instance} - Availability Groups not enabled")
            return False

        replicas = self.executor.execute(server, instance, queries.REPLICA_STATES_QUERY)
        if replicas.failed:
            self.session_log.warning(
                f"Server: {server}, Instance: {instance} - Unable to query availability replica states"
            )
        elif not replicas.has_rows:
            self.session_log.info(f"Server: {server}, Instance: {instance} - No Availability Groups found")
        else:
            for row in replicas.rows:
                self.session_log.info(
                    f"AG: {row['AGName']}, Replica: {row['ReplicaServer']}, "
                    f"Role: {row['Role']}, Sync Health: {row['SyncHealth']}"
                )
        return True

    def check_ag_databases(self, server: str, instance: str) -> None:
        result = self.executor.execute(server, instance, queries.AG_DATABASE_SYNC_QUERY)
        if not result.has_rows:
            self.session_log.warning(
                f"Server: {server}, Instance: {instance} - No AG databases found or unable to query"
            )
            return

        for row in result.rows:
            self.session_log.info(
                f"AG: {row['AGName']}, Database: {row['DatabaseName']}, "
                f"Sync State: {row['SyncState']}, Sync Health: {row['SyncHealth']}"
            )

    def check_standalone_databases(self, server: str, instance: str) -> None:
        result = self.executor.execute(server, instance, queries.STANDALONE_DATABASES_QUERY)
        if result.failed:
            self.session_log.warning(
                f"Server: {server}, Instance: {instance} - Unable to query standalone databases"
            )
            return
        if not result.has_rows:
            self.session_log.info(f"Server: {server}, Instance: {instance} - No standalone databases found")
            return

        for row in result.rows:
            self.session_log.info(
                f"Standalone DB: {row['DatabaseName']}, State: {row['State']}, "
                f"Recovery Model: {row['RecoveryModel']}"
            )
