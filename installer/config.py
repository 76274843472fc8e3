# installer/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants and definitions for the MongoDB node installer.

This module defines truly static values: file locations written on the host,
text templates for the generated artifacts, administrative roles, the
machine-role host-name patterns and the numeric exit codes reported by the
auxiliary installers.

Mutable runtime configuration (replica set name, credentials, IP layout)
is handled by 'installer/config_models.py' and 'installer/config_loader.py'.
"""

from pathlib import Path

# --- Exit codes ---
EXIT_OK: int = 0
EXIT_STAGE_FAILED: int = 1
EXIT_USAGE: int = 2
EXIT_PRECONDITION: int = 3

ERROR_CRONTAB_FAILED: int = 4101
ERROR_GITINSTALL_FAILED: int = 5101
ERROR_MONGOCLIENTINSTALL_FAILED: int = 5201
ERROR_MYSQLCLIENTINSTALL_FAILED: int = 5301
ERROR_NODEINSTALL_FAILED: int = 6101
ERROR_AZURECLI_FAILED: int = 6201
ERROR_JQINSTALL_FAILED: int = 6301

# --- Host file locations ---
MONGOD_CONF_PATH: Path = Path("/etc/mongod.conf")
SYSTEMD_UNIT_PATH: Path = Path("/etc/systemd/system/mongodb.service")
UPSTART_SCRIPT_PATH: Path = Path("/etc/init/mongod.conf")
PID_DIR: Path = Path("/var/run/mongodb")
APT_SOURCES_DIR: Path = Path("/etc/apt/sources.list.d")
RC_LOCAL_PATH: Path = Path("/etc/rc.local")
HOSTS_FILE_PATH: Path = Path("/etc/hosts")
THP_ENABLED_PATH: Path = Path("/sys/kernel/mm/transparent_hugepage/enabled")
THP_DEFRAG_PATH: Path = Path("/sys/kernel/mm/transparent_hugepage/defrag")
SYSTEMD_RUNTIME_DIR: Path = Path("/run/systemd/system")

SYSTEMD_SERVICE_NAME: str = "mongodb"
SYSV_SERVICE_NAME: str = "mongod"

# --- MongoDB administrative constants ---
ADMIN_DATABASE: str = "admin"
ADMIN_USER_ROLES: list[dict[str, str]] = [
    {"role": "userAdminAnyDatabase", "db": ADMIN_DATABASE},
    {"role": "clusterAdmin", "db": ADMIN_DATABASE},
    {"role": "readWriteAnyDatabase", "db": ADMIN_DATABASE},
    {"role": "dbAdminAnyDatabase", "db": ADMIN_DATABASE},
]

# Server error codes treated as "already done" on re-runs.
MONGO_ALREADY_INITIALIZED_CODE: int = 23
# Older servers report a duplicate user as a duplicate key (11000).
MONGO_DUPLICATE_USER_CODES: tuple[int, ...] = (11000, 51003)

# Legacy repository used by the shell/tools installer on older releases.
MONGO_LEGACY_REPO_VERSION: str = "3.0"
MONGO_LEGACY_REPO_KEY_ID: str = "7F0CEB10"
# Newest Ubuntu release without packages for the default server series.
MODERN_RELEASE_THRESHOLD: float = 18.04

# Highest wire protocol version spoken by each server release series.
SERVER_WIRE_VERSIONS: dict[str, int] = {
    "3.0": 3, "3.2": 4, "3.4": 5, "3.6": 6, "4.0": 7, "4.2": 8,
    "4.4": 9, "5.0": 13, "6.0": 17, "7.0": 21, "8.0": 25,
}
# storage.journal.enabled is rejected from 6.1 on.
JOURNAL_OPTION_LAST_SERIES: tuple[int, int] = (6, 0)
# The legacy "mongo" shell was replaced by "mongosh" in 6.0.
LEGACY_SHELL_LAST_SERIES: tuple[int, int] = (5, 0)

# Reconfig errors returned while a previous config is still propagating.
MONGO_CONFIGURATION_IN_PROGRESS_CODE: int = 109
MONGO_CONFIG_NOT_COMMITTED_CODE: int = 308
MONGO_RECONFIG_RETRY_CODES: tuple[int, ...] = (
    MONGO_CONFIGURATION_IN_PROGRESS_CODE,
    MONGO_CONFIG_NOT_COMMITTED_CODE,
)

# --- Machine roles, resolved from the host name suffix ---
MACHINE_ROLE_PATTERNS: list[tuple[str, str]] = [
    ("jumpbox", r"^(.*)jb$"),
    ("mongodb", r"^(.*)mongo[0-3]{1}$"),
    ("mysql", r"^(.*)mysql[0-3]{1}$"),
    ("vmss", r"^(.*)vmss[0-9]+$"),
]
MACHINE_ROLE_UNKNOWN: str = "unknown"

# --- Templates ---
SYSTEMD_UNIT_TEMPLATE: str = """\
[Unit]
Description=High-performance, schema-free document-oriented database
After=syslog.target network.target

[Service]
Type=forking
User={account}
Group={account}
ExecStart={executable} --config {config_path}
ExecStop={executable} --config {config_path} --shutdown

[Install]
WantedBy=multi-user.target
"""

MONGOD_CONF_TEMPLATE: str = """\
systemLog:
    destination: file
    path: "{interim_root}/log/mongod.log"
    quiet: true
    logAppend: true
processManagement:
    fork: true
    pidFilePath: "{pid_file}"
net:
    port: {port}
security:
    #keyFile: ""
    authorization: "disabled"
storage:
    dbPath: "{interim_root}/db"
    directoryPerDB: true
{journal_block}#replication:
    #replSetName: "{replica_set_name}"
"""

# Inserted after "pre-start script" in the upstart job so the PID directory
# exists again after /var/run (tmpfs) is wiped by a reboot.
UPSTART_PRE_START_MARKER: str = "pre-start script"
UPSTART_PRE_START_SNIPPET: str = """\
pre-start script
  if [ ! -d {pid_dir} ]; then
    mkdir -p {pid_dir} && touch {pid_file} && chmod 777 {pid_file}
  fi
"""

RC_LOCAL_THP_BLOCK: str = """\
if test -f /sys/kernel/mm/transparent_hugepage/enabled; then
   echo never > /sys/kernel/mm/transparent_hugepage/enabled
fi
if test -f /sys/kernel/mm/transparent_hugepage/defrag; then
   echo never > /sys/kernel/mm/transparent_hugepage/defrag
fi
"""

MONGOD_CONF_JOURNAL_BLOCK: str = """\
    journal:
        enabled: {journal_enabled}
"""

POSTFIX_PRESEED: str = "postfix postfix/main_mailer_type select No configuration"
