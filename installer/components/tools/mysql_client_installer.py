"""MySQL client and mysqldump installer."""

from installer.components.tools.base_tool_installer import AptToolInstaller
from installer.config import ERROR_MYSQLCLIENTINSTALL_FAILED
from installer.registry import ComponentRegistry


@ComponentRegistry.register(
    name="mysql-client",
    metadata={
        "dependencies": [],
        "error_code": ERROR_MYSQLCLIENTINSTALL_FAILED,
        "description": "MySQL client and mysqldump",
    },
)
class MysqlClientInstaller(AptToolInstaller):
    label = "Mysql Client and mysqldump"
    probe_commands = ("mysql", "mysqldump")

    def install_steps(self):
        # TODO: pin the client version; the wildcard matches nothing on 14.04.
        return [
            (
                "Installing Mysql Client",
                ["mysql-client-core*"],
                "Failed to install the Mysql client",
            ),
            (
                "Installing mysqldump",
                ["mysql-client"],
                "Failed to install the Mysql Dump",
            ),
        ]
