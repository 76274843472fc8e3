"""
mongod service control.

Starts, stops and enables the database service on either systemd or the
legacy `service` command, and waits (bounded) for the listening port.
"""

import logging
import signal
import time
from typing import List, Optional

import psutil

from common.command_utils import (
    command_exists,
    get_symbols,
    log_message,
    run_elevated_command,
)
from common.network_utils import PortStatus, wait_for_port
from common.system_utils import ServiceManager, detect_service_manager, systemd_reload
from installer.config import SYSTEMD_SERVICE_NAME, SYSV_SERVICE_NAME
from installer.config_models import AppSettings
from installer.exceptions import ServiceNotReadyError


class MongoDBService:
    """Controller for the local mongod service."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
        service_manager: Optional[ServiceManager] = None,
    ):
        """
        Args:
            app_settings: The application settings.
            logger: Optional logger instance.
            trace: Echo every service command before running it.
            service_manager: Force a service manager instead of probing the host.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.trace = trace
        self._service_manager = service_manager

    @property
    def service_manager(self) -> ServiceManager:
        if self._service_manager is None:
            self._service_manager = detect_service_manager()
            self.logger.debug(
                f"Detected service manager: {self._service_manager.value}"
            )
        return self._service_manager

    def _run(self, command: List[str]) -> None:
        run_elevated_command(
            command,
            self.app_settings,
            current_logger=self.logger,
            trace=self.trace,
        )

    def start(self) -> PortStatus:
        """
        Start mongod, wait for its port, then enable it at boot.

        Boot enablement only happens once the port accepts connections.

        Returns:
            The readiness outcome.
        """
        log_message(
            "Starting MongoDB daemon processes",
            "info",
            self.logger,
            self.app_settings,
        )
        if self.service_manager is ServiceManager.SYSTEMD:
            # The unit file may have just been written.
            systemd_reload(self.app_settings, self.logger, trace=self.trace)
            self._run(["systemctl", "start", SYSTEMD_SERVICE_NAME])
        else:
            self._run(["service", SYSV_SERVICE_NAME, "start"])

        status = self.wait_until_ready()
        if status is PortStatus.READY:
            self.enable()
        return status

    def ensure_started(self) -> PortStatus:
        """
        Start mongod and require it to become ready.

        Raises:
            ServiceNotReadyError: If the port never accepted a connection.
        """
        status = self.start()
        if status is not PortStatus.READY:
            raise ServiceNotReadyError(
                f"mongod is not accepting connections on port "
                f"{self.app_settings.mongo.port} ({status.value})",
                status=status,
            )
        return status

    def wait_until_ready(self) -> PortStatus:
        service = self.app_settings.service
        return wait_for_port(
            "localhost",
            self.app_settings.mongo.port,
            timeout=service.readiness_timeout,
            interval=service.readiness_interval,
            app_settings=self.app_settings,
            current_logger=self.logger,
        )

    def enable(self) -> None:
        """Enable mongod at boot."""
        if self.service_manager is ServiceManager.SYSTEMD:
            self._run(["systemctl", "enable", SYSTEMD_SERVICE_NAME])
        elif command_exists("sysv-rc-conf"):
            self._run(["sysv-rc-conf", SYSV_SERVICE_NAME, "on"])
        else:
            self._run(["update-rc.d", SYSV_SERVICE_NAME, "defaults"])

    def find_processes(self) -> List[psutil.Process]:
        """Running processes whose executable is the configured mongod binary."""
        executable = self.app_settings.service.executable
        matches = []
        for proc in psutil.process_iter(["pid", "exe", "cmdline"]):
            try:
                exe = proc.info.get("exe")
                cmdline = proc.info.get("cmdline") or []
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            if exe == executable or (cmdline and cmdline[0] == executable):
                matches.append(proc)
        return matches

    def stop(self) -> int:
        """
        Send SIGTERM to every running mongod, then wait out the cool-down.

        The cool-down is always observed, even when nothing was running, so an
        immediately following start is not taken for an unclean restart.

        Returns:
            The number of processes signalled.
        """
        symbols = get_symbols(self.app_settings)
        signalled = 0
        for proc in self.find_processes():
            log_message(
                f"Stopping MongoDB daemon processes (PID {proc.pid})",
                "info",
                self.logger,
                self.app_settings,
            )
            try:
                proc.send_signal(signal.SIGTERM)
                signalled += 1
            except psutil.NoSuchProcess:
                log_message(
                    f"{symbols.get('info', 'ℹ️')} PID {proc.pid} exited before it was signalled.",
                    "debug",
                    self.logger,
                    self.app_settings,
                )

        time.sleep(self.app_settings.service.stop_cooldown)
        return signalled

    def restart(self) -> PortStatus:
        """Stop, then start and require readiness."""
        self.stop()
        return self.ensure_started()
