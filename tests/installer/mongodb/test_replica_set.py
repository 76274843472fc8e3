# tests/installer/mongodb/test_replica_set.py
import copy
import itertools
from unittest.mock import MagicMock, patch

import pytest

from installer.components.mongodb import replica_set
from installer.components.mongodb.mongo_client import CommandResult
from installer.components.mongodb.replica_set import (
    NodeRole,
    ReplicaSetBootstrapper,
    arbiter_target,
    determine_roles,
    member_hosts,
    split_host,
)
from installer.config_models import AppSettings, NodeSettings
from installer.exceptions import ReplicaSetError


class FakeReplicaSet:
    """In-memory mongod answering the replica set commands the bootstrapper sends."""

    def __init__(self, initiated=False, primary=True, reject_hosts=(), busy_codes=()):
        self.initiated = initiated
        self.primary = primary
        self.reject_hosts = set(reject_hosts)
        # Codes answered to the next reconfigs before one is accepted.
        self.busy_codes = list(busy_codes)
        self.config = {
            "_id": "rs0",
            "version": 1,
            "members": [{"_id": 0, "host": "10.0.0.0:27017"}],
        }
        self.commands = []
        self.connections = []

    def connect(self, host, port, **kwargs):
        self.connections.append((host, port, kwargs))
        return FakeClient(self, host, port)

    def member_hosts(self):
        return [member["host"] for member in self.config["members"]]


class FakeClient:
    def __init__(self, replica_set, host, port):
        self.rs = replica_set
        self.address = f"{host}:{port}"
        self.closed = False

    def command(self, name, value=1, **kwargs):
        self.rs.commands.append(name)
        if name == "replSetInitiate":
            if self.rs.initiated:
                return CommandResult(name, False, error="already initialized", code=23)
            self.rs.initiated = True
            return CommandResult(name, True, {"ok": 1})
        if name == "isMaster":
            return CommandResult(name, True, {"ismaster": self.rs.primary})
        if name == "replSetGetConfig":
            return CommandResult(name, True, {"config": copy.deepcopy(self.rs.config)})
        if name == "replSetReconfig":
            host = value["members"][-1]["host"]
            if host in self.rs.reject_hosts:
                return CommandResult(name, False, error=f"{host} unreachable", code=74)
            if self.rs.busy_codes:
                code = self.rs.busy_codes.pop(0)
                return CommandResult(name, False, error="config not committed yet", code=code)
            self.rs.config = value
            return CommandResult(name, True, {"ok": 1})
        return CommandResult(name, True, {"ok": 1})

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def make_settings(**node):
    return AppSettings(
        mongo={"replica_set_name": "rs0", "replica_set_key": "s3cr3tkey"},
        node={"instance_count": 3, **node},
        admin={"username": "admin", "password": "secret"},
        service={"readiness_timeout": 30, "readiness_interval": 1},
    )


def make_bootstrapper(settings, fake, address="10.0.0.9"):
    return ReplicaSetBootstrapper(
        settings,
        logger=MagicMock(),
        client_factory=fake.connect,
        address_resolver=MagicMock(return_value=address),
    )


def test_member_hosts_skip_initiator():
    assert member_hosts("10.0.0.", 3, 0, 27017) == ["10.0.0.1:27017", "10.0.0.2:27017"]
    assert member_hosts("10.0.0.", 3, 4, 27017) == ["10.0.0.5:27017", "10.0.0.6:27017"]
    assert member_hosts("10.0.0.", 1, 0, 27017) == []


def test_determine_roles():
    assert determine_roles(NodeSettings()) == [NodeRole.MEMBER]
    assert determine_roles(NodeSettings(is_last_member=True)) == [NodeRole.LAST_MEMBER]
    assert determine_roles(NodeSettings(is_last_member=True, is_arbiter=True)) == [
        NodeRole.LAST_MEMBER,
        NodeRole.ARBITER,
    ]


def test_arbiter_target():
    assert arbiter_target(NodeSettings(instance_count=3), 27017) == "10.0.0.2:27017"
    assert arbiter_target(NodeSettings(instance_count=3, ip_offset=4), 27017) == "10.0.0.2:27017"
    assert (
        arbiter_target(NodeSettings(instance_count=3, primary_host="10.0.0.7:27018"), 27017)
        == "10.0.0.7:27018"
    )


def test_split_host():
    assert split_host("10.0.0.2:27018", 27017) == ("10.0.0.2", 27018)
    assert split_host("10.0.0.2", 27017) == ("10.0.0.2", 27017)


def test_ordinary_member_sends_nothing():
    fake = FakeReplicaSet()

    assert make_bootstrapper(make_settings(), fake).bootstrap() == [NodeRole.MEMBER]
    assert fake.connections == []


def test_last_member_initiates_and_adds_others():
    fake = FakeReplicaSet()
    bootstrapper = make_bootstrapper(make_settings(is_last_member=True), fake)

    assert bootstrapper.bootstrap() == [NodeRole.LAST_MEMBER]

    assert fake.commands[:2] == ["replSetInitiate", "isMaster"]
    assert fake.member_hosts() == ["10.0.0.0:27017", "10.0.0.1:27017", "10.0.0.2:27017"]
    assert [m["_id"] for m in fake.config["members"]] == [0, 1, 2]
    assert fake.config["version"] == 3
    host, port, kwargs = fake.connections[0]
    assert (host, port) == ("127.0.0.1", 27017)
    assert kwargs["username"] == "admin"
    assert kwargs["password"] == "secret"


def test_initiate_rerun_counts_existing_members():
    fake = FakeReplicaSet()
    bootstrapper = make_bootstrapper(make_settings(is_last_member=True), fake)
    bootstrapper.initiate()
    version = fake.config["version"]

    assert bootstrapper.initiate() == ["10.0.0.1:27017", "10.0.0.2:27017"]
    assert fake.config["version"] == version


def test_failed_add_raises_after_all_attempts():
    fake = FakeReplicaSet(reject_hosts={"10.0.0.1:27017"})
    bootstrapper = make_bootstrapper(make_settings(is_last_member=True), fake)

    with pytest.raises(ReplicaSetError, match="10.0.0.1:27017"):
        bootstrapper.initiate()

    assert fake.member_hosts() == ["10.0.0.0:27017", "10.0.0.2:27017"]
    assert "replSetGetStatus" in fake.commands


def test_initiate_failure_raises():
    fake = FakeReplicaSet()
    client = FakeClient(fake, "127.0.0.1", 27017)
    client.command = MagicMock(
        return_value=CommandResult("replSetInitiate", False, error="no config", code=93)
    )
    bootstrapper = ReplicaSetBootstrapper(
        make_settings(is_last_member=True), MagicMock(), client_factory=lambda *a, **k: client
    )

    with pytest.raises(ReplicaSetError, match="no config"):
        bootstrapper.initiate()


def test_wait_for_primary_gives_up_at_deadline():
    fake = FakeReplicaSet(primary=False)
    bootstrapper = make_bootstrapper(make_settings(), fake)
    client = fake.connect("127.0.0.1", 27017)

    clock = itertools.chain([0.0, 10.0], itertools.repeat(100.0))
    with patch.object(replica_set.time, "monotonic", side_effect=lambda: next(clock)), patch.object(
        replica_set.time, "sleep"
    ) as mock_sleep:
        assert bootstrapper.wait_for_primary(client) is False

    mock_sleep.assert_called_once_with(1.0)


def test_initiate_raises_when_node_never_becomes_primary():
    fake = FakeReplicaSet(primary=False)
    bootstrapper = make_bootstrapper(make_settings(is_last_member=True), fake)

    clock = itertools.chain([0.0], itertools.repeat(100.0))
    with patch.object(replica_set.time, "monotonic", side_effect=lambda: next(clock)), patch.object(
        replica_set.time, "sleep"
    ):
        with pytest.raises(ReplicaSetError, match="127.0.0.1:27017 did not become primary of rs0"):
            bootstrapper.initiate()

    assert "replSetReconfig" not in fake.commands


@pytest.mark.parametrize("code", [109, 308])
def test_reconfig_retried_while_previous_config_commits(code):
    fake = FakeReplicaSet(busy_codes=[code])
    bootstrapper = make_bootstrapper(make_settings(is_last_member=True), fake)

    with patch.object(replica_set.time, "sleep") as mock_sleep:
        assert bootstrapper.initiate() == ["10.0.0.1:27017", "10.0.0.2:27017"]

    assert fake.member_hosts() == ["10.0.0.0:27017", "10.0.0.1:27017", "10.0.0.2:27017"]
    assert fake.commands.count("replSetReconfig") == 3
    assert fake.config["version"] == 3
    mock_sleep.assert_called_once_with(1.0)


def test_reconfig_retry_stops_at_deadline():
    fake = FakeReplicaSet(initiated=True, busy_codes=[308])
    bootstrapper = make_bootstrapper(make_settings(), fake)
    client = fake.connect("127.0.0.1", 27017)

    clock = itertools.chain([0.0], itertools.repeat(100.0))
    with patch.object(replica_set.time, "monotonic", side_effect=lambda: next(clock)), patch.object(
        replica_set.time, "sleep"
    ) as mock_sleep:
        assert bootstrapper.add_member(client, "10.0.0.1:27017") is False

    mock_sleep.assert_not_called()
    assert fake.member_hosts() == ["10.0.0.0:27017"]


def test_arbiter_registers_with_computed_primary():
    fake = FakeReplicaSet(initiated=True)
    bootstrapper = make_bootstrapper(make_settings(is_arbiter=True), fake)

    assert bootstrapper.register_arbiter() == "10.0.0.9:27017"

    assert fake.connections[0][:2] == ("10.0.0.2", 27017)
    assert fake.config["members"][-1] == {
        "_id": 1,
        "host": "10.0.0.9:27017",
        "arbiterOnly": True,
    }


def test_arbiter_uses_primary_host_override():
    fake = FakeReplicaSet(initiated=True)
    bootstrapper = make_bootstrapper(
        make_settings(is_arbiter=True, primary_host="10.0.0.1:27017"), fake
    )

    bootstrapper.bootstrap()

    assert fake.connections[0][:2] == ("10.0.0.1", 27017)


def test_arbiter_rejected_raises():
    fake = FakeReplicaSet(initiated=True, reject_hosts={"10.0.0.9:27017"})
    bootstrapper = make_bootstrapper(make_settings(is_arbiter=True), fake)

    with pytest.raises(ReplicaSetError, match="did not accept arbiter"):
        bootstrapper.register_arbiter()


def test_arbiter_without_address_raises():
    bootstrapper = make_bootstrapper(make_settings(is_arbiter=True), FakeReplicaSet(), address=None)

    with pytest.raises(ReplicaSetError, match="no non-loopback IPv4 address"):
        bootstrapper.register_arbiter()
