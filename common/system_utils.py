# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the MongoDB node installer.

This module includes functions for host inspection: privilege checks,
Ubuntu release detection, service-manager discovery, machine-role
classification and local address discovery.
"""

import enum
import ipaddress
import logging
import os
import re
import socket
from pathlib import Path
from typing import List, Optional

import psutil

from common.command_utils import (
    command_exists,
    get_symbols,
    log_message,
    run_command,
    run_elevated_command,
)
from installer.config import (
    HOSTS_FILE_PATH,
    MACHINE_ROLE_PATTERNS,
    MACHINE_ROLE_UNKNOWN,
    SYSTEMD_RUNTIME_DIR,
)
from installer.config_models import AppSettings
from installer.exceptions import PreconditionError

module_logger = logging.getLogger(__name__)


class ServiceManager(enum.Enum):
    """Service manager generations a host may run."""

    SYSTEMD = "systemd"
    SYSVINIT = "sysvinit"


def is_root() -> bool:
    """Return True when the effective user is root."""
    return os.geteuid() == 0


def get_hostname() -> str:
    return socket.gethostname()


def get_os_release(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[float]:
    """
    Get the numeric release of the distribution (e.g. 16.04) from lsb_release.

    Returns None when lsb_release is missing or prints something unexpected.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["lsb_release", "-rs"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
        return float(result.stdout.strip())
    except FileNotFoundError:
        log_message(
            f"{symbols.get('warning', '!')} lsb_release not found; release unknown.",
            "warning",
            logger_to_use,
            app_settings,
        )
    except ValueError:
        log_message(
            f"{symbols.get('warning', '!')} Unexpected lsb_release output: {result.stdout.strip()!r}",
            "warning",
            logger_to_use,
            app_settings,
        )
    return None


def get_os_codename(
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """
    Get the distribution codename (e.g. 'xenial') from lsb_release.

    Raises:
        subprocess.CalledProcessError: If lsb_release fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    result = run_command(
        ["lsb_release", "-sc"],
        app_settings,
        capture_output=True,
        check=True,
        current_logger=logger_to_use,
    )
    return result.stdout.strip()


def detect_service_manager(
    runtime_dir: Path = SYSTEMD_RUNTIME_DIR,
) -> ServiceManager:
    """
    Detect which service manager runs this host.

    systemd is in charge when `systemctl` is installed and its runtime
    directory exists; anything else is driven through the legacy `service`
    command.
    """
    if command_exists("systemctl") and Path(runtime_dir).is_dir():
        return ServiceManager.SYSTEMD
    return ServiceManager.SYSVINIT


def systemd_reload(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    trace: bool = False,
) -> None:
    """Reload the systemd daemon so new or changed unit files are picked up."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    log_message(
        f"{symbols.get('gear', '⚙️')} Reloading systemd daemon...",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["systemctl", "daemon-reload"],
        app_settings,
        current_logger=logger_to_use,
        trace=trace,
    )


def get_machine_role(hostname: Optional[str] = None) -> str:
    """
    Classify a machine by its host name suffix.

    Returns one of 'jumpbox', 'mongodb', 'mysql', 'vmss' or 'unknown'.
    """
    name = hostname if hostname is not None else get_hostname()
    for role, pattern in MACHINE_ROLE_PATTERNS:
        if re.match(pattern, name):
            return role
    return MACHINE_ROLE_UNKNOWN


def get_non_loopback_ipv4_addresses() -> List[str]:
    """Return the IPv4 addresses of every local interface except loopback."""
    addresses: List[str] = []
    for snics in psutil.net_if_addrs().values():
        for snic in snics:
            if snic.family != socket.AF_INET:
                continue
            if ipaddress.ip_address(snic.address).is_loopback:
                continue
            addresses.append(snic.address)
    return addresses


def get_primary_ipv4_address(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Return the first non-loopback IPv4 address of this machine, or None.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    addresses = get_non_loopback_ipv4_addresses()
    if not addresses:
        log_message(
            f"{symbols.get('warning', '!')} No non-loopback IPv4 address found on this host.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    if len(addresses) > 1:
        log_message(
            f"Several IPv4 addresses found ({', '.join(addresses)}); using {addresses[0]}.",
            "debug",
            logger_to_use,
            app_settings,
        )
    return addresses[0]


def ensure_hostname_in_hosts(
    app_settings: Optional[AppSettings],
    hostname: Optional[str] = None,
    hosts_path: Path = HOSTS_FILE_PATH,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Make sure the local host name resolves through /etc/hosts.

    Returns:
        True if an entry was added, False if one was already present.
    """
    logger_to_use = current_logger if current_logger else module_logger
    name = hostname if hostname is not None else get_hostname()
    hosts_path = Path(hosts_path)
    content = hosts_path.read_text(encoding="utf-8") if hosts_path.exists() else ""

    if name in content:
        log_message(
            f"{name} was found in {hosts_path}", "info", logger_to_use, app_settings
        )
        return False

    log_message(
        f"{name} was not found in and will be added to {hosts_path}",
        "info",
        logger_to_use,
        app_settings,
    )
    with hosts_path.open("a", encoding="utf-8") as fh:
        if content and not content.endswith("\n"):
            fh.write("\n")
        fh.write(f"127.0.0.1 {name}\n")
    log_message(
        f"Hostname {name} added to {hosts_path}", "info", logger_to_use, app_settings
    )
    return True


def ensure_root(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Raise PreconditionError unless running as root.

    Raises:
        PreconditionError: If the effective user is not root.
    """
    logger_to_use = current_logger if current_logger else module_logger
    if not is_root():
        log_message(
            "Script executed without root permissions",
            "error",
            logger_to_use,
            app_settings,
        )
        raise PreconditionError("You must be root to run this program.")


def print_script_header(
    script_name: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Log the start-of-run banner for an entry point."""
    logger_to_use = current_logger if current_logger else module_logger
    for line in (
        "-",
        "#############################################",
        f"Starting {script_name}",
        "#############################################",
        "-",
    ):
        log_message(line, "info", logger_to_use, app_settings)
