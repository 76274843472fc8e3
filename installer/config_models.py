# installer/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the MongoDB node installer,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Default Static Values (can be overridden by config file/env/cli) ---
PACKAGE_URL_DEFAULT: str = "http://repo.mongodb.org/apt/ubuntu"
PACKAGE_NAME_DEFAULT: str = "mongodb-org"
REPO_VERSION_DEFAULT: str = "7.0"
REPO_KEY_ID_DEFAULT: str = "160D26BB1785BA38"
KEYSERVER_DEFAULT: str = "hkp://keyserver.ubuntu.com:80"
KEY_FILE_DEFAULT: str = "/etc/mongo-replicaset-key"
DATA_DISKS_DEFAULT: str = "/datadisks"
INTERIM_ROOT_DEFAULT: str = "/mongo"
MONGODB_PORT_DEFAULT: int = 27017

NODE_IP_PREFIX_DEFAULT: str = "10.0.0."
INSTANCE_COUNT_DEFAULT: int = 1

SERVICE_ACCOUNT_DEFAULT: str = "mongodb"
MONGOD_EXECUTABLE_DEFAULT: str = "/usr/bin/mongod"
READINESS_TIMEOUT_DEFAULT: float = 600.0
READINESS_INTERVAL_DEFAULT: float = 10.0
STOP_COOLDOWN_DEFAULT: float = 15.0
DRIVER_TIMEOUT_MS_DEFAULT: int = 15000

DISK_UTILITY_SCRIPT_DEFAULT: str = "./vm-disk-utils-0.1.sh"

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅", "error": "❌", "warning": "⚠️", "info": "ℹ️",
    "step": "➡️", "gear": "⚙️", "package": "📦", "rocket": "🚀",
    "sparkles": "✨", "critical": "🔥", "debug": "🐛",
}


def release_series(version: str) -> Tuple[int, int]:
    """Release series such as "7.0" as a comparable (major, minor) pair."""
    major, _, rest = version.partition(".")
    minor = rest.split(".", 1)[0] or "0"
    return int(major), int(minor)


class MongoSettings(BaseModel):
    """MongoDB package and server settings."""
    model_config = ConfigDict(extra='ignore', frozen=True)

    package_url: str = Field(default=PACKAGE_URL_DEFAULT, description="Vendor apt repository URL.")
    package_name: str = Field(default=PACKAGE_NAME_DEFAULT, description="Server package to install.")
    repo_version: str = Field(default=REPO_VERSION_DEFAULT, description="Repository release series.")
    repo_key_id: str = Field(default=REPO_KEY_ID_DEFAULT, description="Signing key of the vendor repository.")
    keyserver: str = Field(default=KEYSERVER_DEFAULT, description="Keyserver the signing key is received from.")

    replica_set_name: str = Field(default="", description="Replica set name.")
    replica_set_key: str = Field(default="", description="Replica set key material.", exclude=True)
    key_file: str = Field(default=KEY_FILE_DEFAULT, description="Path of the replica set key file.")

    data_disks: str = Field(default=DATA_DISKS_DEFAULT, description="Root of the striped data disks.")
    interim_root: str = Field(
        default=INTERIM_ROOT_DEFAULT,
        description="Local jump point symlinked to the real data and log directories."
    )
    port: int = Field(default=MONGODB_PORT_DEFAULT, description="mongod listening port.")
    journal_enabled: bool = Field(default=True, description="Enable the storage journal.")

    @property
    def series(self) -> Tuple[int, int]:
        return release_series(self.repo_version)

    @property
    def data_mountpoint(self) -> str:
        return f"{self.data_disks}/disk1"

    @property
    def data_path(self) -> str:
        return f"{self.data_mountpoint}/mongodb"


class NodeSettings(BaseModel):
    """Position of this node within the replica set."""
    model_config = ConfigDict(extra='ignore', frozen=True)

    is_arbiter: bool = Field(default=False, description="Register this node as an arbiter.")
    is_last_member: bool = Field(default=False, description="This node initiates the replica set.")
    instance_count: int = Field(default=INSTANCE_COUNT_DEFAULT, description="Number of member nodes.")
    ip_prefix: str = Field(default=NODE_IP_PREFIX_DEFAULT, description="Member node IP prefix.")
    ip_offset: int = Field(default=0, description="Offset added to member indices.")
    primary_host: Optional[str] = Field(
        default=None,
        description="host:port an arbiter registers against. Computed from the last member index when unset."
    )


class AdminSettings(BaseModel):
    """Administrative database account."""
    model_config = ConfigDict(extra='ignore', frozen=True)

    username: str = Field(default="", description="Administrator user name.")
    password: str = Field(default="", description="Administrator password.", exclude=True)


class ServiceSettings(BaseModel):
    """mongod service control settings."""
    model_config = ConfigDict(extra='ignore', frozen=True)

    account: str = Field(default=SERVICE_ACCOUNT_DEFAULT, description="Account owning the data files.")
    executable: str = Field(default=MONGOD_EXECUTABLE_DEFAULT, description="Path of the mongod binary.")
    readiness_timeout: float = Field(
        default=READINESS_TIMEOUT_DEFAULT, gt=0,
        description="Seconds to wait for the listening port after a start."
    )
    readiness_interval: float = Field(
        default=READINESS_INTERVAL_DEFAULT, gt=0,
        description="Seconds between readiness probes."
    )
    stop_cooldown: float = Field(
        default=STOP_COOLDOWN_DEFAULT, ge=0,
        description="Seconds to wait after a stop so the next start is not seen as unclean."
    )
    driver_timeout_ms: int = Field(
        default=DRIVER_TIMEOUT_MS_DEFAULT, gt=0,
        description="Server selection timeout for administrative connections."
    )


class HostSettings(BaseModel):
    """Host preparation settings."""
    model_config = ConfigDict(extra='ignore', frozen=True)

    disk_utility_script: str = Field(
        default=DISK_UTILITY_SCRIPT_DEFAULT,
        description="External script that stripes the attached data disks."
    )


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_prefix='MONGO_NODE_',
        env_nested_delimiter='__',
        extra='ignore',
        frozen=True,
    )

    mongo: MongoSettings = Field(default_factory=MongoSettings)
    node: NodeSettings = Field(default_factory=NodeSettings)
    admin: AdminSettings = Field(default_factory=AdminSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    host: HostSettings = Field(default_factory=HostSettings)

    # Static symbols, could also be loaded from a separate static config if preferred
    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    def secrets(self) -> list[str]:
        """Values that must never appear in log output."""
        return [s for s in (self.admin.password, self.mongo.replica_set_key) if s]
