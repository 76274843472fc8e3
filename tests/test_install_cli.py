# tests/test_install_cli.py
"""
Tests for the node installer command line.
"""

from unittest.mock import MagicMock, patch

import pytest
from pymongo.common import MIN_SUPPORTED_WIRE_VERSION

from installer import main_installer
from installer.config import SERVER_WIRE_VERSIONS
from installer.config_models import AppSettings, MongoSettings
from installer.exceptions import PreconditionError
from installer.main_installer import (
    NodeProvisioner,
    build_cli_overrides,
    check_preconditions,
    log_options,
    main_installer_entry,
    parse_args,
)

MODULE = "installer.main_installer"
FULL_ARGS = [
    "-i", "http://repo.mongodb.org/apt/ubuntu",
    "-b", "mongodb-org",
    "-r", "rs0",
    "-k", "s3cr3tkey",
    "-u", "admin",
    "-p", "secret",
    "-x", "10.0.0.",
    "-n", "3",
]


@pytest.fixture
def entry_mocks():
    logger = MagicMock()
    with patch(f"{MODULE}.setup_logging", return_value=logger) as setup, patch(
        f"{MODULE}.ensure_root"
    ) as ensure_root, patch(f"{MODULE}.NodeProvisioner") as provisioner, patch(
        f"{MODULE}.add_log_secrets"
    ) as add_secrets:
        yield MagicMock(
            logger=logger,
            setup_logging=setup,
            ensure_root=ensure_root,
            provisioner=provisioner,
            add_log_secrets=add_secrets,
        )


def logged_messages(logger):
    return [c.args[0] for c in logger.info.call_args_list]


def test_help_returns_usage_code(capsys):
    assert main_installer_entry(["-h"]) == 2

    out = capsys.readouterr().out
    assert "This script installs MongoDB on the Ubuntu virtual machine image" in out
    assert "-o (IP Address Offset)" in out


def test_unknown_flag_returns_usage_code(entry_mocks):
    assert main_installer_entry(["-z"]) == 2
    entry_mocks.provisioner.assert_not_called()


def test_missing_credentials_fail_before_any_change(entry_mocks):
    code = main_installer_entry(["-r", "rs0", "-k", "s3cr3tkey", "-n", "3"])

    assert code == 3
    entry_mocks.provisioner.assert_not_called()
    entry_mocks.logger.error.assert_any_call(
        "You must provide a name and password for the system administrator.",
        exc_info=False,
    )


@pytest.mark.parametrize("count", ["0", "-1"])
def test_non_positive_instance_count_rejected(count, entry_mocks):
    args = [a if a != "3" else count for a in FULL_ARGS]

    assert main_installer_entry(args) == 3
    entry_mocks.provisioner.assert_not_called()


def test_missing_package_manager_is_reported(entry_mocks):
    entry_mocks.provisioner.side_effect = FileNotFoundError("apt-get")

    assert main_installer_entry(FULL_ARGS) == 1
    entry_mocks.logger.error.assert_any_call(
        "Required program not found: apt-get", exc_info=False
    )


def test_log_file_enables_json_file_log(entry_mocks, tmp_path):
    log_file = str(tmp_path / "install.jsonl")

    assert main_installer_entry(FULL_ARGS + ["--log-file", log_file]) == 0

    kwargs = entry_mocks.setup_logging.call_args.kwargs
    assert kwargs["enable_file"] is True
    assert kwargs["log_file_path"] == log_file


def test_file_log_is_off_by_default(entry_mocks):
    assert main_installer_entry(FULL_ARGS) == 0

    kwargs = entry_mocks.setup_logging.call_args.kwargs
    assert kwargs["enable_file"] is False
    assert kwargs["log_file_path"] is None


def test_default_server_series_is_supported_by_driver():
    assert SERVER_WIRE_VERSIONS[MongoSettings().repo_version] >= MIN_SUPPORTED_WIRE_VERSION


@patch(f"{MODULE}.ensure_root")
def test_server_series_too_old_for_driver_rejected(mock_root):
    settings = AppSettings(
        mongo={"repo_version": "3.2"},
        node={"instance_count": 3},
        admin={"username": "admin", "password": "secret"},
    )

    with pytest.raises(PreconditionError, match="MongoDB 3.2 is too old for pymongo") as excinfo:
        check_preconditions(settings)

    assert excinfo.value.exit_code == 3


def test_not_root_rejected(entry_mocks):
    entry_mocks.ensure_root.side_effect = PreconditionError("You must be root to run this program.")

    assert main_installer_entry(FULL_ARGS) == 3
    entry_mocks.provisioner.assert_not_called()


def test_successful_run(entry_mocks):
    assert main_installer_entry(FULL_ARGS + ["-l", "--tune-memory"]) == 0

    settings = entry_mocks.provisioner.call_args.args[0]
    assert settings.node.is_last_member is True
    assert settings.node.instance_count == 3
    assert settings.admin.password == "secret"
    entry_mocks.add_log_secrets.assert_called_once_with(["secret", "s3cr3tkey"])
    provisioner = entry_mocks.provisioner.return_value
    provisioner.build_orchestrator.assert_called_once_with(
        tune_memory=True, tune_system=False, configure_datadisks=False
    )
    provisioner.build_orchestrator.return_value.run.assert_called_once()
    assert entry_mocks.setup_logging.call_args.kwargs["secrets"] == ["secret", "s3cr3tkey"]


def test_options_are_logged_without_secrets():
    logger = MagicMock()

    log_options(parse_args(FULL_ARGS + ["-a", "-o", "4"]), logger)

    messages = logged_messages(logger)
    assert "Option r set with value rs0" in messages
    assert "Option n set with value 3" in messages
    assert "Option o set with value 4" in messages
    assert "Option a set with value " in messages
    assert not any("secret" in m or "s3cr3tkey" in m for m in messages)
    assert not any(m.startswith("Option p") or m.startswith("Option k") for m in messages)


def test_arbiter_disables_journal():
    overrides = build_cli_overrides(parse_args(["-a", "-n", "2"]))

    assert overrides["node"]["is_arbiter"] is True
    assert overrides["mongo"]["journal_enabled"] is False
    assert overrides["node"]["instance_count"] == 2


def test_unset_flags_are_none():
    overrides = build_cli_overrides(parse_args([]))

    assert overrides["admin"] == {"username": None, "password": None}
    assert "is_arbiter" not in overrides["node"]


def test_pipeline_order(app_settings, mock_logger):
    provisioner = NodeProvisioner(
        app_settings,
        mock_logger,
        service=MagicMock(),
        package_installer=MagicMock(),
        configurator=MagicMock(),
        admin_provisioner=MagicMock(),
        bootstrapper=MagicMock(),
    )

    orchestrator = provisioner.build_orchestrator(
        tune_memory=True, tune_system=True, configure_datadisks=True
    )

    assert [task.name for task in orchestrator.tasks] == [
        "Configure data disks",
        "Tune memory",
        "Tune system",
        "Install MongoDB",
        "Configure MongoDB",
        "Start MongoDB",
        "Create administrator",
        "Enable replica set",
        "Bootstrap replica set",
    ]


def test_pipeline_runs_stages_in_order(app_settings, mock_logger):
    stages = MagicMock()
    provisioner = NodeProvisioner(
        app_settings,
        mock_logger,
        service=stages.service,
        package_installer=stages.package_installer,
        configurator=stages.configurator,
        admin_provisioner=stages.admin_provisioner,
        bootstrapper=stages.bootstrapper,
    )

    assert provisioner.build_orchestrator().run() is True

    assert [name for name, _, _ in stages.mock_calls if "__" not in name] == [
        "package_installer.install",
        "configurator.configure",
        "service.ensure_started",
        "admin_provisioner.create_admin_user",
        "configurator.enable_replica_set",
        "service.restart",
        "bootstrapper.bootstrap",
    ]


def test_failing_stage_exits_with_its_code(app_settings, mock_logger):
    bootstrapper = MagicMock()
    bootstrapper.bootstrap.side_effect = main_installer.ProvisioningError("rs failed")
    provisioner = NodeProvisioner(
        app_settings,
        mock_logger,
        service=MagicMock(),
        package_installer=MagicMock(),
        configurator=MagicMock(),
        admin_provisioner=MagicMock(),
        bootstrapper=bootstrapper,
    )

    with pytest.raises(SystemExit) as excinfo:
        provisioner.build_orchestrator().run()

    assert excinfo.value.code == 1
