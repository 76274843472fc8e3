#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the auxiliary host utilities: tool installers, repository
sync, SSH key setup and machine-role detection.
"""

import argparse
import logging
import sys
from typing import List, Optional

import installer.components.tools  # noqa: F401  (registers the tools)
from common.git_utils import clean_repository, clone_repository, sync_repository
from common.logging_config import setup_logging
from common.ssh_utils import setup_ssh
from common.system_utils import ensure_root, get_machine_role, print_script_header
from installer.config import EXIT_OK, EXIT_STAGE_FAILED
from installer.config_loader import load_app_settings
from installer.exceptions import ProvisioningError
from installer.registry import ComponentRegistry

SERVICE_NAME = "mongodb-node-tools"


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Auxiliary utilities for MongoDB node hosts"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Trace every command that is run"
    )
    parser.add_argument("-c", "--config", dest="config_file", help="YAML configuration file")
    parser.add_argument("--env-file", dest="env_file", help="File of MONGO_NODE_* settings")
    parser.add_argument(
        "--log-file", dest="log_file", help="Also write JSON log records to this file"
    )
    subparsers = parser.add_subparsers(
        dest="command", help="Command to execute", required=True
    )

    subparsers.add_parser("list", help="List available tools")

    install_parser = subparsers.add_parser("install", help="Install tools")
    install_parser.add_argument("components", nargs="+", help="Tools to install")

    role_parser = subparsers.add_parser(
        "role", help="Print the machine role derived from the host name"
    )
    role_parser.add_argument("hostname", nargs="?", help="Host name to classify")

    clone_parser = subparsers.add_parser("clone", help="Clone a GitHub repository")
    clone_parser.add_argument("account")
    clone_parser.add_argument("project")
    clone_parser.add_argument("branch")
    clone_parser.add_argument("--token", help="GitHub access token")
    clone_parser.add_argument("--path", help="Checkout directory (default ~/<project>)")

    clean_parser = subparsers.add_parser("clean", help="Delete a cloned repository")
    clean_parser.add_argument("path")

    sync_parser = subparsers.add_parser(
        "sync", help="Clone or pull a repository and check out a version"
    )
    sync_parser.add_argument("url")
    sync_parser.add_argument("path")
    sync_parser.add_argument("--version", dest="repo_version", help="Version to check out (default master)")
    sync_parser.add_argument("--token", help="GitHub access token")

    ssh_parser = subparsers.add_parser(
        "setup-ssh", help="Install SSH keys from a cloned secrets repository"
    )
    ssh_parser.add_argument("repository_root")
    ssh_parser.add_argument("cloud")
    ssh_parser.add_argument("admin_user")

    return parser.parse_args(args)


def install_components(
    names: List[str], app_settings, logger: logging.Logger, trace: bool = False
) -> int:
    """Install tools and their dependencies; returns the failing tool's code."""
    try:
        ordered = ComponentRegistry.resolve_dependencies(names)
    except KeyError as e:
        logger.error(f"{e.args[0]}. Use 'list' to see available tools.")
        return EXIT_STAGE_FAILED

    for name in ordered:
        component = ComponentRegistry.create(name, app_settings, logger=logger, trace=trace)
        try:
            component.install()
        except ProvisioningError as e:
            logger.error(str(e))
            return e.exit_code
    return EXIT_OK


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the host utilities."""
    parsed_args = parse_args(args)
    logger = setup_logging(
        SERVICE_NAME,
        log_level="DEBUG" if parsed_args.verbose else "INFO",
        enable_file=bool(parsed_args.log_file),
        log_file_path=parsed_args.log_file,
    )

    try:
        app_settings = load_app_settings(
            config_file_path=parsed_args.config_file,
            env_file=parsed_args.env_file,
            current_logger=logger,
        )

        if parsed_args.command == "list":
            logger.info("Available tools:")
            for name, component_class in ComponentRegistry.get_all_components().items():
                description = component_class.metadata.get("description", "")
                logger.info(f"  - {name}: {description}")
            return EXIT_OK

        if parsed_args.command == "role":
            print(get_machine_role(parsed_args.hostname))
            return EXIT_OK

        print_script_header("install_tools.py", app_settings, logger)

        if parsed_args.command == "install":
            ensure_root(app_settings, logger)
            return install_components(
                parsed_args.components, app_settings, logger, parsed_args.verbose
            )

        if parsed_args.command == "clone":
            clone_repository(
                parsed_args.account,
                parsed_args.project,
                parsed_args.branch,
                app_settings,
                access_token=parsed_args.token,
                repo_path=parsed_args.path,
                current_logger=logger,
                trace=parsed_args.verbose,
            )
        elif parsed_args.command == "clean":
            clean_repository(parsed_args.path, app_settings, logger)
        elif parsed_args.command == "sync":
            sync_repository(
                parsed_args.url,
                parsed_args.path,
                app_settings,
                version=parsed_args.repo_version,
                access_token=parsed_args.token,
                current_logger=logger,
                trace=parsed_args.verbose,
            )
        elif parsed_args.command == "setup-ssh":
            setup_ssh(
                parsed_args.repository_root,
                parsed_args.cloud,
                parsed_args.admin_user,
                app_settings,
                current_logger=logger,
            )
    except ProvisioningError as e:
        logger.error(str(e))
        return e.exit_code
    except Exception as e:
        logger.error(f"'{parsed_args.command}' failed: {e}")
        return EXIT_STAGE_FAILED

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
