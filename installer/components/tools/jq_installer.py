"""jq, the command-line JSON processor."""

from installer.components.tools.base_tool_installer import AptToolInstaller
from installer.config import ERROR_JQINSTALL_FAILED
from installer.registry import ComponentRegistry


@ComponentRegistry.register(
    name="jq",
    metadata={
        "dependencies": [],
        "error_code": ERROR_JQINSTALL_FAILED,
        "description": "Command-line JSON processor",
    },
)
class JqInstaller(AptToolInstaller):
    label = "JSON Processor"
    probe_commands = ("jq",)

    def install_steps(self):
        return [
            (
                "Installing jq - Command-line JSON processor",
                ["jq"],
                "Failed to install jq",
            )
        ]
