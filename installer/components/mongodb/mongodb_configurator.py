"""
MongoDB node configurator.

Lays out the data directories, writes the service unit and the mongod
configuration file, and later switches the node to keyfile-authenticated
replica set mode.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from common.command_utils import log_message
from common.file_utils import (
    chown_recursive,
    ensure_directory,
    force_symlink,
    write_secret_file,
    write_text_file,
)
from installer.base_component import BaseComponent
from installer.config import (
    JOURNAL_OPTION_LAST_SERIES,
    MONGOD_CONF_JOURNAL_BLOCK,
    MONGOD_CONF_PATH,
    MONGOD_CONF_TEMPLATE,
    PID_DIR,
    SYSTEMD_UNIT_PATH,
    SYSTEMD_UNIT_TEMPLATE,
    UPSTART_PRE_START_MARKER,
    UPSTART_PRE_START_SNIPPET,
    UPSTART_SCRIPT_PATH,
)
from installer.config_models import AppSettings

DATA_DIR_MODE = 0o755
PID_FILE_MODE = 0o777
PID_FILE_NAME = "mongod.pid"


class MongoDBConfigurator(BaseComponent):
    """Configurator for a MongoDB replica set member."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
        conf_path: Path = MONGOD_CONF_PATH,
        unit_path: Path = SYSTEMD_UNIT_PATH,
        upstart_path: Path = UPSTART_SCRIPT_PATH,
        pid_dir: Path = PID_DIR,
    ):
        super().__init__(app_settings, logger, trace)
        self.conf_path = Path(conf_path)
        self.unit_path = Path(unit_path)
        self.upstart_path = Path(upstart_path)
        self.pid_dir = Path(pid_dir)

    @property
    def pid_file(self) -> Path:
        return self.pid_dir / PID_FILE_NAME

    def _log(self, message: str, level: str = "info") -> None:
        log_message(message, level, self.logger, self.app_settings)

    def install(self) -> bool:
        # Packages are handled by MongoDBInstaller.
        return False

    def is_installed(self) -> bool:
        return True

    def render_unit_file(self) -> str:
        service = self.app_settings.service
        return SYSTEMD_UNIT_TEMPLATE.format(
            account=service.account,
            executable=service.executable,
            config_path=self.conf_path,
        )

    def render_config(self) -> str:
        mongo = self.app_settings.mongo
        journal_block = ""
        if mongo.series <= JOURNAL_OPTION_LAST_SERIES:
            journal_block = MONGOD_CONF_JOURNAL_BLOCK.format(
                journal_enabled=str(mongo.journal_enabled).lower()
            )
        elif not mongo.journal_enabled:
            self._log(
                f"MongoDB {mongo.repo_version} always journals; "
                "ignoring the disabled journal setting.",
                "debug",
            )
        return MONGOD_CONF_TEMPLATE.format(
            interim_root=mongo.interim_root,
            pid_file=self.pid_file,
            port=mongo.port,
            journal_block=journal_block,
            replica_set_name=mongo.replica_set_name,
        )

    def configure(self) -> bool:
        """
        Write every node artifact. Safe to repeat: directories are reused,
        links are replaced and files are rewritten byte for byte.
        """
        mongo = self.app_settings.mongo
        account = self.app_settings.service.account
        self._log("Configuring MongoDB")

        self._log("Setting up the unit file")
        write_text_file(
            self.unit_path,
            self.render_unit_file(),
            self.app_settings,
            current_logger=self.logger,
        )

        self._log("Executing core configuration")
        data_path = Path(mongo.data_path)
        log_dir = ensure_directory(data_path / "log", self.app_settings, current_logger=self.logger)
        db_dir = ensure_directory(data_path / "db", self.app_settings, current_logger=self.logger)
        chown_recursive(db_dir, account, account, self.app_settings, self.logger)
        chown_recursive(log_dir, account, account, self.app_settings, self.logger)
        os.chmod(data_path, DATA_DIR_MODE)

        self.pid_dir.mkdir(parents=True, exist_ok=True)
        self.pid_file.touch(exist_ok=True)
        os.chmod(self.pid_file, PID_FILE_MODE)

        # mongod crashes when bootstrapping straight from the mounted disk, so it
        # is pointed at a local directory that links to it instead.
        interim_root = Path(mongo.interim_root)
        self._log(f"Initiating local jump point at for MongoDB at {interim_root}")
        ensure_directory(
            interim_root,
            self.app_settings,
            owner=account,
            group=account,
            mode=DATA_DIR_MODE,
            current_logger=self.logger,
        )
        force_symlink(log_dir, interim_root / "log", self.app_settings, self.logger)
        force_symlink(db_dir, interim_root / "db", self.app_settings, self.logger)

        write_text_file(
            self.conf_path,
            self.render_config(),
            self.app_settings,
            current_logger=self.logger,
        )

        self.patch_upstart_script()
        return True

    def patch_upstart_script(self) -> bool:
        """
        Make the upstart job recreate the PID directory, which lives on tmpfs
        and is gone after a reboot.

        Returns:
            True if the script was changed.
        """
        if not self.upstart_path.is_file():
            self._log(
                f"No upstart script at {self.upstart_path}; nothing to patch.",
                "debug",
            )
            return False

        content = self.upstart_path.read_text(encoding="utf-8")
        snippet = UPSTART_PRE_START_SNIPPET.format(
            pid_dir=self.pid_dir, pid_file=self.pid_file
        )
        if snippet in content or UPSTART_PRE_START_MARKER not in content:
            return False

        write_text_file(
            self.upstart_path,
            content.replace(UPSTART_PRE_START_MARKER, snippet.rstrip("\n"), 1),
            self.app_settings,
            current_logger=self.logger,
        )
        self._log(f"Patched {self.upstart_path} to recreate {self.pid_dir}")
        return True

    def is_configured(self) -> bool:
        return self.conf_path.is_file() and self.unit_path.is_file()

    def write_key_file(self) -> Path:
        """Write the replica set key, readable by the service account only."""
        mongo = self.app_settings.mongo
        account = self.app_settings.service.account
        return write_secret_file(
            mongo.key_file,
            f"{mongo.replica_set_key}\n",
            self.app_settings,
            owner=account,
            group=account,
            current_logger=self.logger,
        )

    def replica_set_config(self, content: str) -> str:
        """Turn on keyfile authentication, authorization and replication."""
        key_file = self.app_settings.mongo.key_file
        content = re.sub(
            r'#keyFile: ""$',
            f'keyFile: "{key_file}"',
            content,
            flags=re.MULTILINE,
        )
        content = re.sub(
            r'authorization: "disabled"$',
            'authorization: "enabled"',
            content,
            flags=re.MULTILINE,
        )
        content = content.replace("#replication:", "replication:")
        return content.replace("#replSetName:", "replSetName:")

    def enable_replica_set(self) -> None:
        """
        Write the key file and rewrite the configuration for replica set mode.

        The service has to be restarted for the change to take effect.
        """
        self._log(
            f"Configuring a replica set {self.app_settings.mongo.replica_set_name}"
        )
        self.write_key_file()
        content = self.conf_path.read_text(encoding="utf-8")
        updated = self.replica_set_config(content)
        if updated != content:
            write_text_file(
                self.conf_path,
                updated,
                self.app_settings,
                current_logger=self.logger,
            )
