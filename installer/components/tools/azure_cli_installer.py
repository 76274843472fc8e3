"""Azure CLI installer (the npm distribution)."""

from typing import List

from common.command_utils import run_elevated_command
from installer.components.tools.base_tool_installer import AptToolInstaller
from installer.config import ERROR_AZURECLI_FAILED
from installer.registry import ComponentRegistry


@ComponentRegistry.register(
    name="azure-cli",
    metadata={
        "dependencies": ["nodejs"],
        "error_code": ERROR_AZURECLI_FAILED,
        "description": "Azure command-line interface",
    },
)
class AzureCliInstaller(AptToolInstaller):
    label = "Azure CLI"
    probe_commands = ("azure",)

    def install_steps(self):
        return [("Installing azure cli", ["azure-cli"], "Failed to install azure cli")]

    def run_step(self, packages: List[str]) -> None:
        run_elevated_command(
            ["npm", "install", "-g"] + packages,
            self.app_settings,
            current_logger=self.logger,
            trace=self.trace,
        )
