# tests/test_install_tools_cli.py
from unittest.mock import MagicMock, patch

import pytest

import install_tools
from installer.exceptions import InstallationError


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("install_tools.setup_logging", return_value=MagicMock()) as setup:
        yield setup


def test_log_file_enables_json_file_log(quiet_logging, tmp_path):
    log_file = str(tmp_path / "tools.jsonl")

    with patch("install_tools.get_machine_role", return_value="jumpbox"):
        assert install_tools.main(["--log-file", log_file, "role", "jb"]) == 0

    assert quiet_logging.call_args.kwargs["enable_file"] is True
    assert quiet_logging.call_args.kwargs["log_file_path"] == log_file


def test_role_prints_machine_role(capsys):
    with patch("install_tools.get_machine_role", return_value="mongo") as role:
        assert install_tools.main(["role", "mongo-node-1"]) == 0

    role.assert_called_once_with("mongo-node-1")
    assert capsys.readouterr().out.strip() == "mongo"


def test_list_logs_tools(quiet_logging):
    assert install_tools.main(["list"]) == 0

    messages = [c.args[0] for c in quiet_logging.return_value.info.call_args_list]
    assert "  - jq: Command-line JSON processor" in messages


@patch("install_tools.ensure_root")
def test_install_unknown_tool(mock_root):
    assert install_tools.main(["install", "emacs"]) == 1


@patch("install_tools.ComponentRegistry.create")
@patch("install_tools.ensure_root")
def test_install_resolves_dependencies(mock_root, mock_create):
    assert install_tools.main(["install", "azure-cli"]) == 0

    assert [c.args[0] for c in mock_create.call_args_list] == ["nodejs", "azure-cli"]
    assert mock_create.return_value.install.call_count == 2


@patch("install_tools.ComponentRegistry.create")
@patch("install_tools.ensure_root")
def test_install_failure_returns_tool_code(mock_root, mock_create):
    mock_create.return_value.install.side_effect = InstallationError(
        "Failed to install the GIT client on host !", exit_code=5101
    )

    assert install_tools.main(["install", "git", "jq"]) == 5101
    assert mock_create.call_count == 1


@patch("install_tools.clone_repository")
def test_clone_passes_token(mock_clone):
    assert install_tools.main(
        ["clone", "acme", "secrets", "main", "--token", "t0k", "--path", "/tmp/secrets"]
    ) == 0

    args, kwargs = mock_clone.call_args
    assert args[:3] == ("acme", "secrets", "main")
    assert kwargs["access_token"] == "t0k"
    assert kwargs["repo_path"] == "/tmp/secrets"


@patch("install_tools.sync_repository", side_effect=RuntimeError("pull failed"))
def test_sync_failure_returns_one(mock_sync):
    assert install_tools.main(["sync", "https://github.com/acme/app.git", "/srv/app"]) == 1


@patch("install_tools.setup_ssh")
def test_setup_ssh(mock_setup):
    assert install_tools.main(["setup-ssh", "/tmp/secrets", "azure", "admin"]) == 0

    assert mock_setup.call_args.args[:3] == ("/tmp/secrets", "azure", "admin")
