"""Git client installer."""

from installer.components.tools.base_tool_installer import AptToolInstaller
from installer.config import ERROR_GITINSTALL_FAILED
from installer.registry import ComponentRegistry


@ComponentRegistry.register(
    name="git",
    metadata={
        "dependencies": [],
        "error_code": ERROR_GITINSTALL_FAILED,
        "description": "Git client",
    },
)
class GitInstaller(AptToolInstaller):
    label = "Git client"
    probe_commands = ("git",)

    def install_steps(self):
        return [("Installing Git Client", ["git"], "Failed to install the GIT client")]
