"""
MCP server exposing the health check as tools.

Each tool call performs one complete, sequential run in a worker thread
and returns its report as JSON.
"""

import asyncio
import functools
import json
import logging
import os
from typing import Optional

from fastmcp import FastMCP, Context

from .config import load_config
from .discovery import InstanceDiscoverer
from .exceptions import ConfigurationError
from .models import InstanceStatus
from .runner import run_health_check
from .session_log import SessionLog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

PROFILE_ENV = "MSSQL_HEALTH_PROFILE"

# Most recent report, served by the last-report resource
last_report = None

mcp = FastMCP(
    name="SQL Server Health Check",
    instructions="Discovers SQL Server instances on a host and reports availability group and database health."
)


def _load(server: str, log_directory: Optional[str] = None):
    return load_config(profile=os.getenv(PROFILE_ENV), server=server, log_directory=log_directory)


def _discover(config):
    with SessionLog.create(config.logging.directory, echo_console=config.logging.echo_console,
                           level=config.logging.level.value) as session_log:
        session_log.separator(f"SQL Server Instance Discovery - {config.server}")
        discoverer = InstanceDiscoverer(session_log, config=config.discovery)
        instances = discoverer.discover(config.server)
        session_log.separator("END OF LOG")
    return instances, str(session_log.log_file)


async def discover_instances(server: str, ctx: Context) -> str:
    """
    List the SQL Server instances registered as services on a host.

    Args:
        server: Host name or address
        ctx: FastMCP context for logging

    Returns:
        JSON with the discovered instance names and the log file
    """
    try:
        config = _load(server)
    except ConfigurationError as e:
        await ctx.error(f"Invalid configuration: {e}")
        return json.dumps({"success": False, "error": str(e)})

    await ctx.info(f"Discovering SQL Server instances on {server}")
    loop = asyncio.get_running_loop()
    try:
        instances, log_file = await loop.run_in_executor(None, _discover, config)
    except OSError as e:
        await ctx.error(f"Unable to write session log: {e}")
        return json.dumps({"success": False, "error": str(e)})
    return json.dumps({"success": True, "server": server, "instances": instances, "log_file": log_file}, indent=2)


async def check_server_health(server: str, ctx: Context, log_directory: Optional[str] = None) -> str:
    """
    Run a full health check pass over every instance on a host.

    Args:
        server: Host name or address
        ctx: FastMCP context for logging
        log_directory: Directory for the session log, overrides configuration

    Returns:
        JSON run report with one summary record per instance
    """
    global last_report

    try:
        config = _load(server, log_directory)
    except ConfigurationError as e:
        await ctx.error(f"Invalid configuration: {e}")
        return json.dumps({"success": False, "error": str(e)})

    await ctx.info(f"Running health check on {server}")
    loop = asyncio.get_running_loop()
    try:
        report = await loop.run_in_executor(None, functools.partial(run_health_check, config))
    except OSError as e:
        await ctx.error(f"Unable to write session log: {e}")
        return json.dumps({"success": False, "error": str(e)})

    last_report = report
    unavailable = [r.instance for r in report.summary if r.status is not InstanceStatus.AVAILABLE]
    if unavailable:
        await ctx.warning(f"Instances not available: {', '.join(unavailable)}")
    await ctx.info(f"Checked {len(report.summary)} instance(s); log: {report.log_file}")
    return report.to_json()


async def get_last_report() -> str:
    """Return the most recent run report."""
    if last_report is None:
        return json.dumps({"success": False, "error": "No health check has run yet"})
    return last_report.to_json()


# Registered without rebinding so the coroutines stay directly callable.
mcp.tool()(discover_instances)
mcp.tool()(check_server_health)
mcp.resource(
    "mssql-health://last-report",
    name="Last Health Report",
    description="Report of the most recent health check run"
)(get_last_report)


def main():
    """Run the MCP server over stdio."""
    logger.info("Starting SQL Server Health Check MCP server")
    mcp.run()


if __name__ == "__main__":
    main()
