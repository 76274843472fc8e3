"""
Replica set bootstrap.

The node flagged as last member initiates the replica set and adds every
other member by its computed address. An arbiter registers itself with the
member it takes to be primary. Other nodes have nothing to do.
"""

import enum
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from common.command_utils import get_symbols, log_message
from common.network_utils import build_member_host
from common.system_utils import get_primary_ipv4_address
from installer.components.mongodb.mongo_client import MongoAdminClient
from installer.config import (
    MONGO_ALREADY_INITIALIZED_CODE,
    MONGO_RECONFIG_RETRY_CODES,
)
from installer.config_models import AppSettings, NodeSettings
from installer.exceptions import ReplicaSetError

LOCAL_HOST = "127.0.0.1"


class NodeRole(enum.Enum):
    MEMBER = "member"
    LAST_MEMBER = "last_member"
    ARBITER = "arbiter"


def determine_roles(node: NodeSettings) -> List[NodeRole]:
    """Roles a node plays; the arbiter role can be combined with last member."""
    roles = []
    if node.is_last_member:
        roles.append(NodeRole.LAST_MEMBER)
    if node.is_arbiter:
        roles.append(NodeRole.ARBITER)
    return roles or [NodeRole.MEMBER]


def member_hosts(prefix: str, instance_count: int, offset: int, port: int) -> List[str]:
    """
    Addresses the last member adds: indices offset+1 .. offset+instance_count-1.

    The initiating node itself is never in the list.
    """
    return [
        build_member_host(prefix, n, port)
        for n in range(offset + 1, offset + instance_count)
    ]


def arbiter_target(node: NodeSettings, port: int) -> str:
    """
    Member an arbiter registers against.

    Without an explicit primary_host this is prefix + (instance_count - 1),
    regardless of the offset or of which member is primary right now.
    """
    if node.primary_host:
        return node.primary_host
    return build_member_host(node.ip_prefix, node.instance_count - 1, port)


def split_host(address: str, default_port: int) -> tuple:
    host, _, port = address.rpartition(":")
    if not host:
        return address, default_port
    return host, int(port)


class ReplicaSetBootstrapper:
    """Runs the replica set commands appropriate for this node."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        client_factory: Callable[..., MongoAdminClient] = MongoAdminClient,
        address_resolver: Callable[..., Optional[str]] = get_primary_ipv4_address,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.client_factory = client_factory
        self.address_resolver = address_resolver

    def _log(self, message: str, level: str = "info") -> None:
        log_message(message, level, self.logger, self.app_settings)

    def _connect(self, host: str, port: int) -> MongoAdminClient:
        admin = self.app_settings.admin
        return self.client_factory(
            host,
            port,
            username=admin.username,
            password=admin.password,
            timeout_ms=self.app_settings.service.driver_timeout_ms,
            logger=self.logger,
        )

    def bootstrap(self) -> List[NodeRole]:
        """
        Run the bootstrap for every role of this node.

        Raises:
            ReplicaSetError: If a replica set command fails.
        """
        roles = determine_roles(self.app_settings.node)
        if roles == [NodeRole.MEMBER]:
            self._log("Ordinary member; no replica set commands to run.")
        if NodeRole.LAST_MEMBER in roles:
            self.initiate()
        if NodeRole.ARBITER in roles:
            self.register_arbiter()
        return roles

    def initiate(self) -> List[str]:
        """
        Initiate the replica set on this node and add the other members.

        Every member is attempted even if an earlier one fails.

        Returns:
            The member hosts that were added or already present.

        Raises:
            ReplicaSetError: If initiation fails, this node does not become
                primary or any member could not be added.
        """
        mongo = self.app_settings.mongo
        node = self.app_settings.node
        symbols = get_symbols(self.app_settings)
        self._log(
            f"Initiating a replica set {mongo.replica_set_name} with {node.instance_count} members"
        )

        with self._connect(LOCAL_HOST, mongo.port) as client:
            result = client.command("replSetInitiate")
            if not result.ok:
                if result.code != MONGO_ALREADY_INITIALIZED_CODE:
                    raise ReplicaSetError(
                        f"Replica set initiation failed: {result.error}"
                    )
                self._log(
                    f"{symbols.get('info', 'ℹ️')} Replica set {mongo.replica_set_name} is already initialized."
                )

            if not self.wait_for_primary(client):
                raise ReplicaSetError(
                    f"{client.address} did not become primary of {mongo.replica_set_name}"
                )

            added: List[str] = []
            failed: List[str] = []
            for host in member_hosts(
                node.ip_prefix, node.instance_count, node.ip_offset, mongo.port
            ):
                self._log(
                    f"Adding member {host} to replica set {mongo.replica_set_name}"
                )
                if self.add_member(client, host):
                    added.append(host)
                else:
                    failed.append(host)

            self.log_diagnostics(client)

        if failed:
            raise ReplicaSetError(
                f"Could not add members to {mongo.replica_set_name}: {', '.join(failed)}"
            )
        return added

    def wait_for_primary(self, client: MongoAdminClient) -> bool:
        """
        Wait, bounded by the readiness timeout, until the node is primary.

        Reconfiguration only succeeds on the primary, and a freshly initiated
        node needs a moment to elect itself.
        """
        service = self.app_settings.service
        deadline = time.monotonic() + service.readiness_timeout
        while True:
            result = client.command("isMaster")
            if result.ok and result.response.get("ismaster"):
                return True
            if time.monotonic() >= deadline:
                self._log(
                    f"{client.address} did not become primary within {service.readiness_timeout:g}s.",
                    "warning",
                )
                return False
            self._log(f"Waiting for {client.address} to become primary...", "debug")
            time.sleep(min(service.readiness_interval, 1.0))

    def add_member(
        self,
        client: MongoAdminClient,
        host: str,
        arbiter_only: bool = False,
    ) -> bool:
        """
        Append host to the replica set configuration.

        A host that is already a member counts as success. While the previous
        configuration is still being committed the server refuses a new one;
        such refusals are retried until the readiness timeout runs out.

        Returns:
            True if the host is a member afterwards.
        """
        symbols = get_symbols(self.app_settings)
        service = self.app_settings.service
        deadline = time.monotonic() + service.readiness_timeout
        while True:
            current = client.command("replSetGetConfig")
            if not current.ok:
                self._log(
                    f"{symbols.get('error', '❌')} Could not read the replica set configuration from {client.address}: {current.error}",
                    "error",
                )
                return False

            config: Dict[str, Any] = dict(current.response["config"])
            members = list(config.get("members", []))
            if any(member.get("host") == host for member in members):
                self._log(f"{host} is already a member of the replica set.")
                return True

            new_member: Dict[str, Any] = {
                "_id": max((member["_id"] for member in members), default=-1) + 1,
                "host": host,
            }
            if arbiter_only:
                new_member["arbiterOnly"] = True
            config["members"] = members + [new_member]
            config["version"] = config.get("version", 0) + 1

            result = client.command("replSetReconfig", config)
            if result.ok:
                return True
            if result.code in MONGO_RECONFIG_RETRY_CODES and time.monotonic() < deadline:
                self._log(
                    f"Replica set configuration is still being committed; retrying {host}: {result.error}",
                    "debug",
                )
                time.sleep(min(service.readiness_interval, 1.0))
                continue
            self._log(
                f"{symbols.get('error', '❌')} Failed to add {host} to the replica set: {result.error}",
                "error",
            )
            return False

    def log_diagnostics(self, client: MongoAdminClient) -> None:
        for name in ("replSetGetConfig", "replSetGetStatus"):
            result = client.command(name)
            if result.ok:
                self._log(f"{name}: {result.response}")
            else:
                self._log(f"{name} failed: {result.error}", "warning")

    def register_arbiter(self) -> str:
        """
        Add this node as an arbiter through the computed (or given) primary.

        Returns:
            The arbiter address that was registered.

        Raises:
            ReplicaSetError: If this node has no usable address or the primary
                rejects the arbiter.
        """
        mongo = self.app_settings.mongo
        node = self.app_settings.node
        own_ip = self.address_resolver(self.app_settings, self.logger)
        if not own_ip:
            raise ReplicaSetError(
                "Cannot register arbiter: no non-loopback IPv4 address found."
            )

        target = arbiter_target(node, mongo.port)
        if not node.primary_host:
            self._log(
                f"Assuming {target} is primary; pass --primary-host if another member was elected.",
                "debug",
            )
        arbiter_host = f"{own_ip}:{mongo.port}"
        self._log(
            f"Adding an arbiter ({arbiter_host}) node to the replica set {mongo.replica_set_name}"
        )

        host, port = split_host(target, mongo.port)
        with self._connect(host, port) as client:
            if not self.add_member(client, arbiter_host, arbiter_only=True):
                raise ReplicaSetError(
                    f"Primary {target} did not accept arbiter {arbiter_host}"
                )
        return arbiter_host
