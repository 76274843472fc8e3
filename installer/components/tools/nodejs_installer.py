"""Node.js and npm installer."""

from installer.components.tools.base_tool_installer import AptToolInstaller
from installer.config import ERROR_NODEINSTALL_FAILED
from installer.registry import ComponentRegistry


@ComponentRegistry.register(
    name="nodejs",
    metadata={
        "dependencies": [],
        "error_code": ERROR_NODEINSTALL_FAILED,
        "description": "Node.js JavaScript runtime and npm",
    },
)
class NodejsInstaller(AptToolInstaller):
    label = "Node.js and npm"
    probe_commands = ("node", "npm")

    def install_steps(self):
        return [
            (
                "Installing nodejs-legacy and npm",
                ["nodejs-legacy", "npm"],
                "Failed to install nodejs-legacy and/or npm",
            )
        ]
