# installer/main_installer.py
# -*- coding: utf-8 -*-
"""
Main entry point and orchestrator for the MongoDB node installer.
Handles argument parsing, logging setup, precondition checks, and runs the
provisioning stages in order through the common Orchestrator.
"""

import argparse
import logging
from typing import Any, Dict, List, Optional

import pymongo
from pymongo.common import MIN_SUPPORTED_WIRE_VERSION

from common.command_utils import log_message
from common.logging_config import add_log_secrets, setup_logging
from common.orchestrator import Orchestrator
from common.system_utils import ensure_root, get_hostname, print_script_header
from installer.components.host.host_tuning import (
    configure_datadisks,
    tune_memory,
    tune_system,
)
from installer.components.mongodb.admin_user import AdminUserProvisioner
from installer.components.mongodb.mongodb_configurator import MongoDBConfigurator
from installer.components.mongodb.mongodb_installer import MongoDBInstaller
from installer.components.mongodb.mongodb_service import MongoDBService
from installer.components.mongodb.replica_set import ReplicaSetBootstrapper
from installer.config import (
    EXIT_OK,
    EXIT_STAGE_FAILED,
    EXIT_USAGE,
    SERVER_WIRE_VERSIONS,
)
from installer.config_loader import load_app_settings
from installer.config_models import AppSettings
from installer.exceptions import PreconditionError, ProvisioningError

SERVICE_NAME = "mongodb-node-installer"

# Short options whose values are echoed at start-up, in flag order.
# -p and -k are never logged.
LOGGED_OPTIONS = [
    ("i", "package_url"),
    ("b", "package_name"),
    ("r", "replica_set_name"),
    ("u", "admin_username"),
    ("x", "ip_prefix"),
    ("n", "instance_count"),
    ("o", "ip_offset"),
    ("a", "arbiter"),
    ("l", "last_member"),
]

HELP_TEXT = """\
This script installs MongoDB on the Ubuntu virtual machine image
Options:
        -i Installation package URL
        -b Installation package name
        -r Replica set name
        -k Replica set key
        -u System administrator's user name
        -p System administrator's password
        -x Member node IP prefix
        -n Number of member nodes
        -a (arbiter indicator)
        -l (last member indicator)
        -o (IP Address Offset)
        -v, --verbose            Trace every command that is run
        -c, --config FILE        YAML configuration file
        --env-file FILE          File of MONGO_NODE_* settings
        --log-file FILE          Also write JSON log records to FILE
        --primary-host HOST:PORT Member an arbiter registers with
        --readiness-timeout SECS Maximum wait for mongod to accept connections
        --tune-memory            Disable transparent huge pages first
        --tune-system            Add this host name to /etc/hosts first
        --configure-datadisks    Stripe the data disks first
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="install.py",
        description="Installs MongoDB on the Ubuntu virtual machine image",
        add_help=False,
    )
    parser.add_argument("-i", dest="package_url")
    parser.add_argument("-b", dest="package_name")
    parser.add_argument("-r", dest="replica_set_name")
    parser.add_argument("-k", dest="replica_set_key")
    parser.add_argument("-u", dest="admin_username")
    parser.add_argument("-p", dest="admin_password")
    parser.add_argument("-x", dest="ip_prefix")
    parser.add_argument("-n", dest="instance_count", type=int)
    parser.add_argument("-o", dest="ip_offset", type=int)
    parser.add_argument("-a", dest="arbiter", action="store_true")
    parser.add_argument("-l", dest="last_member", action="store_true")
    parser.add_argument("-h", "--help", dest="help", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-c", "--config", dest="config_file")
    parser.add_argument("--env-file", dest="env_file")
    parser.add_argument("--log-file", dest="log_file")
    parser.add_argument("--primary-host", dest="primary_host")
    parser.add_argument("--readiness-timeout", dest="readiness_timeout", type=float)
    parser.add_argument("--tune-memory", action="store_true")
    parser.add_argument("--tune-system", action="store_true")
    parser.add_argument("--configure-datadisks", action="store_true")
    return parser


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments. Invalid flags exit with code 2."""
    return build_parser().parse_args(args)


def build_cli_overrides(parsed_args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed flags onto the nested AppSettings structure."""
    mongo: Dict[str, Any] = {
        "package_url": parsed_args.package_url,
        "package_name": parsed_args.package_name,
        "replica_set_name": parsed_args.replica_set_name,
        "replica_set_key": parsed_args.replica_set_key,
    }
    node: Dict[str, Any] = {
        "ip_prefix": parsed_args.ip_prefix,
        "instance_count": parsed_args.instance_count,
        "ip_offset": parsed_args.ip_offset,
        "primary_host": parsed_args.primary_host,
    }
    if parsed_args.arbiter:
        node["is_arbiter"] = True
        # Arbiters hold no data.
        mongo["journal_enabled"] = False
    if parsed_args.last_member:
        node["is_last_member"] = True

    return {
        "mongo": mongo,
        "node": node,
        "admin": {
            "username": parsed_args.admin_username,
            "password": parsed_args.admin_password,
        },
        "service": {"readiness_timeout": parsed_args.readiness_timeout},
    }


def log_options(parsed_args: argparse.Namespace, logger: logging.Logger) -> None:
    """Echo the given options, except the password and the replica set key."""
    for flag, dest in LOGGED_OPTIONS:
        value = getattr(parsed_args, dest)
        if value is None or value is False:
            continue
        shown = "" if value is True else value
        log_message(f"Option {flag} set with value {shown}", "info", logger)


def check_preconditions(
    app_settings: AppSettings, logger: Optional[logging.Logger] = None
) -> None:
    """
    Verify the run can proceed. Nothing on the host is touched before this.

    Raises:
        PreconditionError: If not root, credentials are missing, the
            configured server series is too old for the driver or the
            instance count is below one.
    """
    ensure_root(app_settings, logger)

    admin = app_settings.admin
    if not admin.username or not admin.password:
        log_message(
            "Script executed without admin credentials", "error", logger, app_settings
        )
        raise PreconditionError(
            "You must provide a name and password for the system administrator."
        )

    mongo = app_settings.mongo
    wire_version = SERVER_WIRE_VERSIONS.get(mongo.repo_version)
    if wire_version is not None and wire_version < MIN_SUPPORTED_WIRE_VERSION:
        raise PreconditionError(
            f"MongoDB {mongo.repo_version} is too old for pymongo {pymongo.version}; "
            "choose a newer repository series."
        )

    if app_settings.node.instance_count <= 0:
        raise PreconditionError(
            f"There must be at least one instance specified. "
            f"'INSTANCE_COUNT'={app_settings.node.instance_count}"
        )


class NodeProvisioner:
    """
    The provisioning stages of one node, wired to their components.

    Each stage accepts the `app_settings` and `context` keyword arguments the
    Orchestrator passes to every task.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
        service: Optional[MongoDBService] = None,
        package_installer: Optional[MongoDBInstaller] = None,
        configurator: Optional[MongoDBConfigurator] = None,
        admin_provisioner: Optional[AdminUserProvisioner] = None,
        bootstrapper: Optional[ReplicaSetBootstrapper] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(SERVICE_NAME)
        self.trace = trace
        self.service = service or MongoDBService(
            app_settings, logger=self.logger, trace=trace
        )
        self.package_installer = package_installer or MongoDBInstaller(
            app_settings, logger=self.logger, trace=trace, service=self.service
        )
        self.configurator = configurator or MongoDBConfigurator(
            app_settings, logger=self.logger, trace=trace
        )
        self.admin_provisioner = admin_provisioner or AdminUserProvisioner(
            app_settings, logger=self.logger
        )
        self.bootstrapper = bootstrapper or ReplicaSetBootstrapper(
            app_settings, logger=self.logger
        )

    def tune_memory(self, app_settings: AppSettings, context: Dict[str, Any]):
        return tune_memory(app_settings, self.logger)

    def tune_system(self, app_settings: AppSettings, context: Dict[str, Any]):
        return tune_system(app_settings, self.logger)

    def configure_datadisks(self, app_settings: AppSettings, context: Dict[str, Any]):
        return configure_datadisks(app_settings, self.logger, trace=self.trace)

    def install_packages(self, app_settings: AppSettings, context: Dict[str, Any]):
        return self.package_installer.install()

    def configure_node(self, app_settings: AppSettings, context: Dict[str, Any]):
        return self.configurator.configure()

    def start_service(self, app_settings: AppSettings, context: Dict[str, Any]):
        return self.service.ensure_started()

    def create_admin_user(self, app_settings: AppSettings, context: Dict[str, Any]):
        return self.admin_provisioner.create_admin_user()

    def enable_replica_set(self, app_settings: AppSettings, context: Dict[str, Any]):
        self.configurator.enable_replica_set()
        return self.service.restart()

    def bootstrap_replica_set(self, app_settings: AppSettings, context: Dict[str, Any]):
        return self.bootstrapper.bootstrap()

    def build_orchestrator(
        self,
        tune_memory: bool = False,
        tune_system: bool = False,
        configure_datadisks: bool = False,
    ) -> Orchestrator:
        orchestrator = Orchestrator(self.app_settings, self.logger)
        if configure_datadisks:
            orchestrator.add_task("Configure data disks", self.configure_datadisks)
        if tune_memory:
            orchestrator.add_task("Tune memory", self.tune_memory)
        if tune_system:
            orchestrator.add_task("Tune system", self.tune_system)
        orchestrator.add_task("Install MongoDB", self.install_packages)
        orchestrator.add_task("Configure MongoDB", self.configure_node)
        orchestrator.add_task("Start MongoDB", self.start_service)
        orchestrator.add_task("Create administrator", self.create_admin_user)
        orchestrator.add_task("Enable replica set", self.enable_replica_set)
        orchestrator.add_task("Bootstrap replica set", self.bootstrap_replica_set)
        return orchestrator


def main_installer_entry(cli_args_list: Optional[List[str]] = None) -> int:
    """
    Run the node installer.

    Returns:
        0 on success, 2 for -h or bad flags, 3 on a failed precondition and
        the failing stage's code otherwise (fatal stages exit the process
        through the Orchestrator).
    """
    try:
        parsed_args = parse_args(cli_args_list)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    if parsed_args.help:
        print(HELP_TEXT, end="")
        return EXIT_USAGE

    logger = setup_logging(
        SERVICE_NAME,
        log_level="DEBUG" if parsed_args.verbose else "INFO",
        enable_file=bool(parsed_args.log_file),
        log_file_path=parsed_args.log_file,
        secrets=[parsed_args.admin_password, parsed_args.replica_set_key],
    )
    print_script_header("install.py", current_logger=logger)
    log_message(
        f"Begin execution of MongoDB installation script extension on {get_hostname()}",
        "info",
        logger,
    )
    log_options(parsed_args, logger)

    try:
        app_settings = load_app_settings(
            build_cli_overrides(parsed_args),
            config_file_path=parsed_args.config_file,
            env_file=parsed_args.env_file,
            current_logger=logger,
        )
        add_log_secrets(app_settings.secrets())
        check_preconditions(app_settings, logger)
        provisioner = NodeProvisioner(app_settings, logger, trace=parsed_args.verbose)
    except ProvisioningError as e:
        log_message(str(e), "error", logger)
        return e.exit_code
    except FileNotFoundError as e:
        log_message(f"Required program not found: {e}", "error", logger)
        return EXIT_STAGE_FAILED

    orchestrator = provisioner.build_orchestrator(
        tune_memory=parsed_args.tune_memory,
        tune_system=parsed_args.tune_system,
        configure_datadisks=parsed_args.configure_datadisks,
    )
    orchestrator.run()

    log_message(
        f"{app_settings.symbols.get('rocket', '🚀')} MongoDB node provisioning completed.",
        "success",
        logger,
        app_settings,
    )
    return EXIT_OK
