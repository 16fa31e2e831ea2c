"""Top-level run: discover instances, check each one, write the summary."""

import logging
from datetime import datetime
from typing import List, Optional

from .checker import InstanceChecker
from .config import HealthCheckConfig
from .database import QueryExecutor
from .discovery import InstanceDiscoverer
from .models import RunReport, SummaryRecord
from .session_log import SessionLog

logger = logging.getLogger(__name__)


def run_checks(server: str, session_log: SessionLog, discoverer: InstanceDiscoverer,
               checker: InstanceChecker) -> RunReport:
    """
    Run one pass over ``server`` with already built components.

    Returns:
        RunReport with one summary record per discovered instance
    """
    session_log.separator(f"SQL Server Health Check - {server}")

    instances = discoverer.discover(server)
    summary: List[SummaryRecord] = []
    for instance in instances:
        summary = checker.check(server, instance, summary)

    session_log.write_summary(summary)
    return RunReport(
        server=server,
        log_file=str(session_log.log_file),
        instances=list(instances),
        summary=summary
    )


def run_health_check(config: HealthCheckConfig, enumerator=None, connect=None,
                     run_time: Optional[datetime] = None) -> RunReport:
    """
    Build the components from configuration and run one pass.

    Args:
        config: Validated configuration
        enumerator: Optional service enumerator replacing PowerShell
        connect: Optional DB-API connect callable replacing pymssql.connect
        run_time: Timestamp embedded in the log file name, defaults to now
    """
    session_log = SessionLog.create(
        config.logging.directory,
        run_time=run_time,
        echo_console=config.logging.echo_console,
        level=config.logging.level.value
    )
    logger.info(f"Writing health check log to {session_log.log_file}")

    with session_log:
        executor = QueryExecutor(session_log, config.connection, connect=connect)
        discoverer = InstanceDiscoverer(session_log, enumerator=enumerator, config=config.discovery)
        checker = InstanceChecker(executor, session_log)
        report = run_checks(config.server, session_log, discoverer, checker)

    logger.info(f"Health check of {config.server} finished: {len(report.summary)} instance(s) checked")
    return report
