"""
Auxiliary tool installers.

Importing this package registers every tool with the ComponentRegistry.
"""

from installer.components.tools import (  # noqa: F401
    azure_cli_installer,
    git_installer,
    jq_installer,
    mongo_shell_installer,
    mysql_client_installer,
    nodejs_installer,
)
