# common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions.
"""
import enum
import logging
import socket
import time
from typing import Optional

from installer.config_models import AppSettings

from .command_utils import get_symbols, log_message

module_logger = logging.getLogger(__name__)


class PortStatus(enum.Enum):
    """Outcome of waiting for a TCP port."""

    READY = "ready"
    # The host resolved but nothing accepted a connection before the deadline.
    NOT_READY = "not_ready"
    # The host name could not be resolved at all.
    UNREACHABLE = "unreachable"


def probe_port(host: str, port: int, connect_timeout: float = 5.0) -> PortStatus:
    """Try a single TCP connection to host:port."""
    try:
        with socket.create_connection((host, port), timeout=connect_timeout):
            return PortStatus.READY
    except socket.gaierror:
        return PortStatus.UNREACHABLE
    except OSError:
        return PortStatus.NOT_READY


def wait_for_port(
    host: str,
    port: int,
    timeout: float,
    interval: float,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> PortStatus:
    """
    Poll host:port until it accepts a TCP connection or the timeout elapses.

    Args:
        host: Host name or address to connect to.
        port: TCP port.
        timeout: Overall deadline in seconds. The wait never sleeps past it.
        interval: Seconds between attempts.
        app_settings: Settings providing logging symbols.
        current_logger: Logger to report progress on.

    Returns:
        PortStatus.READY once a connection succeeds, PortStatus.UNREACHABLE
        immediately if the host cannot be resolved, PortStatus.NOT_READY when
        the deadline passes.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    deadline = time.monotonic() + timeout

    while True:
        remaining = deadline - time.monotonic()
        status = probe_port(host, port, connect_timeout=max(min(remaining, interval), 0.1))
        if status is not PortStatus.NOT_READY:
            return status

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            log_message(
                f"{symbols.get('error', '❌')} {host}:{port} did not accept connections within {timeout:g}s.",
                "error",
                logger_to_use,
                app_settings,
            )
            return PortStatus.NOT_READY

        log_message(
            f"Waiting for {host}:{port} to accept connections...",
            "info",
            logger_to_use,
            app_settings,
        )
        time.sleep(min(interval, remaining))


def build_member_host(prefix: str, index: int, port: int) -> str:
    """Join an IP prefix, a member index and a port, e.g. '10.0.0.' + 2 -> '10.0.0.2:27017'."""
    return f"{prefix}{index}:{port}"
