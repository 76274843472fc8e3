# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from common.command_utils import (
    command_exists,
    run_elevated_command,
)
from installer.config import APT_SOURCES_DIR
from installer.config_models import AppSettings

NONINTERACTIVE_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptManager:
    """
    A centralized manager for Debian apt packages using command-line tools.

    Every operation raises subprocess.CalledProcessError when the underlying
    apt command fails.
    """

    def __init__(
        self, logger: Optional[logging.Logger] = None, trace: bool = False
    ):
        """
        Initializes the AptManager.
        Args:
            logger: An optional logging object.
            trace: Echo every apt command before it runs.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.trace = trace
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def _env(self) -> dict:
        env = dict(os.environ)
        env.update(NONINTERACTIVE_ENV)
        return env

    def update(self, app_settings: AppSettings, quiet: bool = False) -> None:
        """
        Updates the list of available packages using 'apt-get update'.

        Args:
            app_settings: The application settings.
            quiet: Pass -qq to apt-get.
        """
        self.logger.info("Updating Repository")
        cmd = ["apt-get", "-y", "update"]
        if quiet:
            cmd.insert(2, "-qq")
        run_elevated_command(
            cmd,
            app_settings,
            current_logger=self.logger,
            env=self._env(),
            trace=self.trace,
        )

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        update_first: bool = False,
    ) -> None:
        """
        Installs one or more packages using 'apt-get install -y'.

        Args:
            packages: A single package name or a list of package names.
                Names may be apt patterns such as 'mysql-client-core*'.
            app_settings: The application settings.
            update_first: Whether to update the package lists before installing.
        """
        if not isinstance(packages, list):
            packages = [packages]

        if update_first:
            self.update(app_settings)

        self.logger.info(f"Installing packages: {', '.join(packages)}")
        run_elevated_command(
            ["apt-get", "-y", "install"] + packages,
            app_settings,
            current_logger=self.logger,
            env=self._env(),
            trace=self.trace,
        )

    def add_key_from_keyserver(
        self, key_id: str, keyserver: str, app_settings: AppSettings
    ) -> None:
        """
        Registers a repository signing key received from a keyserver.

        Args:
            key_id: The key to receive.
            keyserver: The keyserver URL, e.g. hkp://keyserver.ubuntu.com:80.
            app_settings: The application settings.
        """
        self.logger.info(f"Receiving signing key {key_id} from {keyserver}")
        run_elevated_command(
            ["apt-key", "adv", "--keyserver", keyserver, "--recv", key_id],
            app_settings,
            current_logger=self.logger,
            trace=self.trace,
        )

    def add_list_repository(
        self,
        list_name: str,
        deb_line: str,
        app_settings: AppSettings,
        sources_dir: Path = APT_SOURCES_DIR,
    ) -> Path:
        """
        Writes a one-line apt source list file, replacing any previous content.

        Args:
            list_name: The file name without the '.list' suffix.
            deb_line: The 'deb ...' line to write.
            app_settings: The application settings.
            sources_dir: Directory holding apt source lists.

        Returns:
            The path of the written list file.
        """
        list_path = Path(sources_dir) / f"{list_name}.list"
        self.logger.info(f"Adding repository '{deb_line}' to {list_path}")
        list_path.parent.mkdir(parents=True, exist_ok=True)
        list_path.write_text(f"{deb_line}\n", encoding="utf-8")
        list_path.chmod(0o644)
        return list_path

    def preseed(self, selection: str, app_settings: AppSettings) -> None:
        """
        Feeds a debconf selection so the next install does not prompt.

        Args:
            selection: A line in debconf-set-selections format.
            app_settings: The application settings.
        """
        self.logger.info(f"Preseeding debconf: {selection}")
        run_elevated_command(
            ["debconf-set-selections"],
            app_settings,
            cmd_input=f"{selection}\n",
            current_logger=self.logger,
            trace=self.trace,
        )
