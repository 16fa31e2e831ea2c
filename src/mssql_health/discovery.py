"""Instance discovery through the host's service manager."""

import json
import logging
import subprocess
from typing import Any, List, Optional

from .config import DiscoveryConfig
from .exceptions import ServiceEnumerationError
from .models import DEFAULT_INSTANCE, ServiceEntry
from .session_log import SessionLog

logger = logging.getLogger(__name__)


def parse_service_name(service_name: str, config: Optional[DiscoveryConfig] = None) -> Optional[str]:
    """
    Derive the instance name from a SQL Server service name.

    ``MSSQLSERVER`` maps to the default instance and ``MSSQL$NAME`` maps
    to ``NAME``. Anything else is malformed.

    Args:
        service_name: Service name as reported by the service manager
        config: Naming convention, defaults to the stock SQL Server one

    Returns:
        Instance name, or None if the service name does not follow the convention
    """
    config = config or DiscoveryConfig()
    name = (service_name or "").strip()

    if name.upper() == config.default_service.upper():
        return DEFAULT_INSTANCE

    named_prefix = f"{config.service_prefix}{config.instance_separator}"
    if name.upper().startswith(named_prefix.upper()):
        instance = name[len(named_prefix):]
        if instance:
            return instance

    return None


def is_instance_service(entry: ServiceEntry, config: Optional[DiscoveryConfig] = None) -> bool:
    """Both the service name prefix and the display label must match."""
    config = config or DiscoveryConfig()
    return (
        entry.name.upper().startswith(config.service_prefix.upper())
        and entry.display_name.startswith(config.display_label)
    )


class PowerShellServiceEnumerator:
    """Lists services on a host with ``Get-Service -ComputerName``."""

    def __init__(self, config: Optional[DiscoveryConfig] = None):
        self.config = config or DiscoveryConfig()

    def build_command(self, server: str) -> List[str]:
        quoted = server.replace("'", "''")
        script = (
            f"Get-Service -ComputerName '{quoted}' -ErrorAction Stop | "
            "Select-Object Name, DisplayName | ConvertTo-Json -Compress"
        )
        return [self.config.powershell, "-NoProfile", "-NonInteractive", "-Command", script]

    def list_services(self, server: str) -> List[ServiceEntry]:
        """
        Return the services registered on ``server``.

        Raises:
            ServiceEnumerationError: If the command cannot run, fails, or returns unparsable output
        """
        command = self.build_command(server)
        logger.debug(f"Enumerating services on {server}")
        try:
            result = subprocess.run(
                command, capture_output=True, text=True, timeout=self.config.timeout
            )
        except subprocess.TimeoutExpired:
            raise ServiceEnumerationError(
                f"Service enumeration on {server} timed out after {self.config.timeout}s"
            )
        except OSError as e:
            raise ServiceEnumerationError(f"Unable to run {self.config.powershell}: {e}")

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise ServiceEnumerationError(
                f"Get-Service failed on {server} (exit code {result.returncode}): {detail}"
            )

        return self.parse_output(result.stdout)

    @staticmethod
    def parse_output(output: str) -> List[ServiceEntry]:
        """Parse ConvertTo-Json output, which is a bare object for a single service."""
        text = (output or "").strip()
        if not text:
            return []

        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as e:
            raise ServiceEnumerationError(f"Unparsable service list: {e}")

        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise ServiceEnumerationError(f"Unexpected service list type: {type(data).__name__}")

        return [
            ServiceEntry(name=str(item.get("Name") or ""), display_name=str(item.get("DisplayName") or ""))
            for item in data
            if isinstance(item, dict)
        ]


class InstanceDiscoverer:
    """Turns the host's service list into an ordered list of instance names."""

    def __init__(self, session_log: SessionLog, enumerator=None, config: Optional[DiscoveryConfig] = None):
        self.session_log = session_log
        self.config = config or DiscoveryConfig()
        self.enumerator = enumerator or PowerShellServiceEnumerator(self.config)

    def discover(self, server: str) -> List[str]:
        """
        Discover instances on ``server``.

        Never raises and never returns an empty list: when nothing usable
        is found the default instance is returned so it still gets checked.
        """
        try:
            services = self.enumerator.list_services(server)
        except ServiceEnumerationError as e:
            self.session_log.error(f"Failed to enumerate SQL Server services on {server}: {e}")
            return [DEFAULT_INSTANCE]
        except Exception as e:
            logger.debug("Service enumeration raised unexpectedly", exc_info=True)
            self.session_log.error(f"Failed to enumerate SQL Server services on {server}: {e}")
            return [DEFAULT_INSTANCE]

        instances: List[str] = []
        for entry in services:
            if not is_instance_service(entry, self.config):
                continue
            instance = parse_service_name(entry.name, self.config)
            if instance is None:
                self.session_log.warning(
                    f"Skipping service with unrecognized name '{entry.name}' ({entry.display_name}) on {server}"
                )
                continue
            if instance not in instances:
                instances.append(instance)

        if not instances:
            self.session_log.warning(
                f"No SQL Server services found on {server}; falling back to the default instance"
            )
            return [DEFAULT_INSTANCE]

        self.session_log.info(f"Discovered {len(instances)} instance(s) on {server}: {', '.join(instances)}")
        return instances
