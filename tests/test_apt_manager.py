# tests/test_apt_manager.py
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from common.debian.apt_manager import AptManager


@pytest.fixture
def apt_manager():
    """Fixture to initialize AptManager with mocked dependencies."""
    mock_logger = MagicMock()
    mock_app_settings = MagicMock()
    with (
        patch(
            "common.debian.apt_manager.run_elevated_command"
        ) as mock_run_elevated,
        patch("common.debian.apt_manager.command_exists", return_value=True),
    ):
        manager = AptManager(logger=mock_logger)
        yield manager, mock_logger, mock_run_elevated, mock_app_settings


def test_init_requires_apt_get():
    with patch("common.debian.apt_manager.command_exists", return_value=False):
        with pytest.raises(FileNotFoundError):
            AptManager(logger=MagicMock())


def test_install_packages(apt_manager):
    manager, logger, mock_run_elevated, mock_app_settings = apt_manager

    manager.install("mongodb-org", mock_app_settings)

    logger.info.assert_any_call("Installing packages: mongodb-org")
    args, kwargs = mock_run_elevated.call_args
    assert args[0] == ["apt-get", "-y", "install", "mongodb-org"]
    assert kwargs["env"]["DEBIAN_FRONTEND"] == "noninteractive"


def test_install_with_update_first(apt_manager):
    manager, _, mock_run_elevated, mock_app_settings = apt_manager

    manager.install(["nodejs-legacy", "npm"], mock_app_settings, update_first=True)

    commands = [c.args[0] for c in mock_run_elevated.call_args_list]
    assert commands == [
        ["apt-get", "-y", "update"],
        ["apt-get", "-y", "install", "nodejs-legacy", "npm"],
    ]


def test_quiet_update(apt_manager):
    manager, _, mock_run_elevated, mock_app_settings = apt_manager

    manager.update(mock_app_settings, quiet=True)

    assert mock_run_elevated.call_args.args[0] == ["apt-get", "-y", "-qq", "update"]


def test_install_failure_propagates(apt_manager):
    manager, _, mock_run_elevated, mock_app_settings = apt_manager
    mock_run_elevated.side_effect = subprocess.CalledProcessError(100, "apt-get")

    with pytest.raises(subprocess.CalledProcessError):
        manager.install(["git"], mock_app_settings)


def test_add_key_from_keyserver(apt_manager):
    manager, _, mock_run_elevated, mock_app_settings = apt_manager

    manager.add_key_from_keyserver("EA312927", "hkp://keyserver.ubuntu.com:80", mock_app_settings)

    assert mock_run_elevated.call_args.args[0] == [
        "apt-key", "adv", "--keyserver", "hkp://keyserver.ubuntu.com:80", "--recv", "EA312927",
    ]


def test_add_list_repository_writes_one_line(apt_manager, tmp_path):
    manager, _, _, mock_app_settings = apt_manager
    line = "deb http://repo.mongodb.org/apt/ubuntu xenial/mongodb-org/3.2 multiverse"

    path = manager.add_list_repository("mongodb-org-3.2", line, mock_app_settings, sources_dir=tmp_path)

    assert path == tmp_path / "mongodb-org-3.2.list"
    assert path.read_text() == line + "\n"


def test_preseed_feeds_debconf(apt_manager):
    manager, _, mock_run_elevated, mock_app_settings = apt_manager

    manager.preseed("postfix postfix/main_mailer_type select No configuration", mock_app_settings)

    args, kwargs = mock_run_elevated.call_args
    assert args[0] == ["debconf-set-selections"]
    assert kwargs["cmd_input"] == "postfix postfix/main_mailer_type select No configuration\n"
