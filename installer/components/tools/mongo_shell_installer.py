"""MongoDB shell, mongodump and mongorestore installer."""

from common.system_utils import get_os_codename, get_os_release
from installer.components.tools.base_tool_installer import AptToolInstaller
from installer.config import (
    ERROR_MONGOCLIENTINSTALL_FAILED,
    LEGACY_SHELL_LAST_SERIES,
    MODERN_RELEASE_THRESHOLD,
    MONGO_LEGACY_REPO_KEY_ID,
    MONGO_LEGACY_REPO_VERSION,
)
from installer.config_models import release_series
from installer.registry import ComponentRegistry


@ComponentRegistry.register(
    name="mongo-shell",
    metadata={
        "dependencies": [],
        "error_code": ERROR_MONGOCLIENTINSTALL_FAILED,
        "description": "MongoDB shell, mongodump and mongorestore",
    },
)
class MongoShellInstaller(AptToolInstaller):
    label = "MongoDB Shell, mongodump, and mongorestore"

    @property
    def probe_commands(self):
        version, _ = self.repository()
        shell = "mongo" if release_series(version) <= LEGACY_SHELL_LAST_SERIES else "mongosh"
        return (shell, "mongodump", "mongorestore")

    def repository(self):
        """(repo version, signing key) matching this Ubuntu release."""
        mongo = self.app_settings.mongo
        release = get_os_release(self.app_settings, self.logger)
        if release is not None and release > MODERN_RELEASE_THRESHOLD:
            return mongo.repo_version, mongo.repo_key_id
        return MONGO_LEGACY_REPO_VERSION, MONGO_LEGACY_REPO_KEY_ID

    def prepare(self) -> None:
        mongo = self.app_settings.mongo
        version, key_id = self.repository()
        codename = get_os_codename(self.app_settings, self.logger)
        self.apt_manager.add_key_from_keyserver(
            key_id, mongo.keyserver, self.app_settings
        )
        self.apt_manager.add_list_repository(
            f"mongodb-org-{version}",
            f"deb {mongo.package_url} {codename}/mongodb-org/{version} multiverse",
            self.app_settings,
        )

    def install_steps(self):
        return [
            (
                "Installing Mongo Shell",
                ["mongodb-org-shell"],
                "Failed to install the Mongo client",
            ),
            (
                "Installing Mongo Tools",
                ["mongodb-org-tools"],
                "Failed to install the Mongo dump/restore",
            ),
        ]
