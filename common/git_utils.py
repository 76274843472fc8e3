# common/git_utils.py
# -*- coding: utf-8 -*-
"""
Helpers for cloning and syncing GitHub repositories onto the host.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from installer.config_models import AppSettings
from installer.exceptions import PreconditionError

from .command_utils import get_symbols, log_message, run_elevated_command

module_logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_VERSION = "master"


def _with_token(url: str, token: Optional[str]) -> str:
    """Insert an access token in front of github.com in a clone URL."""
    if not token:
        return url
    return url.replace("github.com", f"{token}@github.com", 1)


def _redact(url: str, token: Optional[str]) -> str:
    return url.replace(token, "****") if token else url


def clean_repository(
    repo_path: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Delete a previously cloned repository directory, if any."""
    logger_to_use = current_logger if current_logger else module_logger
    log_message(
        f"Cleaning up the cloned GitHub Repository at '{repo_path}'",
        "info",
        logger_to_use,
        app_settings,
    )
    path = Path(repo_path)
    if path.is_dir():
        shutil.rmtree(path)


def clone_repository(
    account_name: str,
    project_name: str,
    branch: str,
    app_settings: Optional[AppSettings] = None,
    access_token: Optional[str] = None,
    repo_path: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    trace: bool = False,
) -> Path:
    """
    Clone https://github.com/<account>/<project>.git at a branch, from scratch.

    Any existing checkout at repo_path is removed first. repo_path defaults to
    ~/<project_name>.

    Raises:
        PreconditionError: If account, project or branch is empty.
        subprocess.CalledProcessError: If git fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    if not account_name or not project_name or not branch:
        log_message(
            "You must specify the GitHub account name, project name and branch ",
            "error",
            logger_to_use,
            app_settings,
        )
        raise PreconditionError(
            "GitHub account name, project name and branch are required."
        )

    target = Path(repo_path) if repo_path else Path.home() / project_name
    clean_repository(str(target), app_settings, logger_to_use)

    url = _with_token(
        f"https://github.com/{account_name}/{project_name}.git", access_token
    )
    log_message(
        f"Cloning the project with: {_redact(url, access_token)} from the '{branch}' branch and saved at {target}",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["git", "clone", "-b", branch, url, str(target)],
        app_settings,
        current_logger=logger_to_use,
        trace=trace,
    )
    return target


def sync_repository(
    repo_url: str,
    repo_path: str,
    app_settings: Optional[AppSettings] = None,
    version: Optional[str] = None,
    access_token: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    trace: bool = False,
) -> Path:
    """
    Clone repo_url into repo_path, or pull if it is already there, then check
    out version ('master' when not given).

    Raises:
        subprocess.CalledProcessError: If any git command fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    target = Path(repo_path)
    checkout = version or DEFAULT_REPOSITORY_VERSION

    if not target.is_dir():
        target.mkdir(parents=True, exist_ok=True)
        url = _with_token(repo_url, access_token)
        log_message(
            f"Cloning {_redact(url, access_token)} into {target}",
            "info",
            logger_to_use,
            app_settings,
        )
        run_elevated_command(
            ["git", "clone", url, str(target)],
            app_settings,
            current_logger=logger_to_use,
            trace=trace,
        )
    else:
        log_message(
            f"Pulling latest changes in {target}",
            "info",
            logger_to_use,
            app_settings,
        )
        run_elevated_command(
            ["git", "pull"],
            app_settings,
            current_logger=logger_to_use,
            cwd=str(target),
            trace=trace,
        )

    run_elevated_command(
        ["git", "checkout", checkout],
        app_settings,
        current_logger=logger_to_use,
        cwd=str(target),
        trace=trace,
    )
    log_message(
        f"{symbols.get('success', '✅')} {target} is at '{checkout}'",
        "success",
        logger_to_use,
        app_settings,
    )
    return target
