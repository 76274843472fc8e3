"""
MongoDB package installer.

Registers the vendor apt repository, installs the server package and leaves
the freshly installed service stopped.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from common.command_utils import check_package_installed, log_message
from common.debian.apt_manager import AptManager
from common.system_utils import get_os_codename
from installer.base_component import BaseComponent
from installer.components.mongodb.mongodb_service import MongoDBService
from installer.config import APT_SOURCES_DIR, MONGOD_CONF_PATH
from installer.config_models import AppSettings
from installer.exceptions import InstallationError


class MongoDBInstaller(BaseComponent):
    """Installer for the MongoDB server package."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
        service: Optional[MongoDBService] = None,
        apt_manager: Optional[AptManager] = None,
        conf_path: Path = MONGOD_CONF_PATH,
        sources_dir: Path = APT_SOURCES_DIR,
    ):
        super().__init__(app_settings, logger, trace)
        self.service = service or MongoDBService(
            app_settings, logger=self.logger, trace=trace
        )
        self.apt_manager = apt_manager or AptManager(
            logger=self.logger, trace=trace
        )
        self.conf_path = Path(conf_path)
        self.sources_dir = Path(sources_dir)

    def repository_line(self, codename: str) -> str:
        mongo = self.app_settings.mongo
        return (
            f"deb {mongo.package_url} {codename}/mongodb-org/"
            f"{mongo.repo_version} multiverse"
        )

    def install(self) -> bool:
        """
        Install the configured MongoDB package.

        Raises:
            InstallationError: If any package command fails.
        """
        mongo = self.app_settings.mongo
        symbols = self.app_settings.symbols
        log_message(
            f"Downloading MongoDB package {mongo.package_name} from {mongo.package_url}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            self.apt_manager.add_key_from_keyserver(
                mongo.repo_key_id, mongo.keyserver, self.app_settings
            )
            codename = get_os_codename(self.app_settings, self.logger)
            self.apt_manager.add_list_repository(
                f"mongodb-org-{mongo.repo_version}",
                self.repository_line(codename),
                self.app_settings,
                sources_dir=self.sources_dir,
            )
            self.apt_manager.update(self.app_settings)

            # A leftover configuration file makes the package prompt.
            if self.conf_path.is_file():
                log_message(
                    f"Removing previous configuration file {self.conf_path}",
                    "info",
                    self.logger,
                    self.app_settings,
                )
                self.conf_path.unlink()

            log_message(
                f"Installing MongoDB package {mongo.package_name}",
                "info",
                self.logger,
                self.app_settings,
            )
            self.apt_manager.install(mongo.package_name, self.app_settings)
        except subprocess.CalledProcessError as e:
            raise InstallationError(
                f"Failed to install MongoDB package {mongo.package_name}: {e}"
            ) from e

        # The package starts mongod with its stock configuration.
        self.service.stop()

        log_message(
            f"{symbols['success']} MongoDB package {mongo.package_name} installed.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        return check_package_installed(
            self.app_settings.mongo.package_name,
            self.app_settings,
            self.logger,
        )
