"""
Shared behaviour of the auxiliary tool installers.

A tool counts as installed when all of its commands are on PATH. Otherwise
the package indices are refreshed and each install step runs in turn; the
first failing step raises InstallationError with the tool's error code.
"""

import logging
import subprocess
from typing import List, Optional, Sequence, Tuple

from common.command_utils import command_exists, log_message
from common.debian.apt_manager import AptManager
from common.system_utils import get_hostname
from installer.base_component import BaseComponent
from installer.config_models import AppSettings
from installer.exceptions import InstallationError

InstallStep = Tuple[str, List[str], str]


class AptToolInstaller(BaseComponent):
    """Base class for tools installed from apt packages."""

    label: str = ""
    probe_commands: Sequence[str] = ()

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
    ):
        super().__init__(app_settings, logger, trace)
        self._apt_manager: Optional[AptManager] = None

    @property
    def apt_manager(self) -> AptManager:
        if self._apt_manager is None:
            self._apt_manager = AptManager(logger=self.logger, trace=self.trace)
        return self._apt_manager

    def _log(self, message: str, level: str = "info") -> None:
        log_message(message, level, self.logger, self.app_settings)

    def install_steps(self) -> List[InstallStep]:
        """(progress message, packages, failure message) for each step."""
        return []

    def prepare(self) -> None:
        """Hook run before the package indices are refreshed."""

    def run_step(self, packages: List[str]) -> None:
        self.apt_manager.install(packages, self.app_settings)

    def is_installed(self) -> bool:
        return all(command_exists(cmd) for cmd in self.probe_commands)

    def install(self) -> bool:
        """
        Install the tool unless it is already present.

        Returns:
            True if the tool was installed, False if it was already there.

        Raises:
            InstallationError: With the tool's error code when a step fails.
        """
        if self.is_installed():
            self._log(f"{self.label} already installed")
            return False

        self._log(f"Installing {self.label}")
        error_message = f"Failed to install {self.label}"
        try:
            self.prepare()
            self.apt_manager.update(self.app_settings, quiet=True)
            for message, packages, error_message in self.install_steps():
                self._log(message)
                self.run_step(packages)
        except subprocess.CalledProcessError as e:
            message = f"{error_message} on {get_hostname()} !"
            self._log(message, "error")
            raise InstallationError(
                message, exit_code=self.get_error_code()
            ) from e

        self._log(f"{self.label} installed")
        return True
