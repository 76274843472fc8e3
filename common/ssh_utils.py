# common/ssh_utils.py
# -*- coding: utf-8 -*-
"""
Install SSH key pairs kept in a cloned secrets repository.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional

from installer.config_models import AppSettings

from .command_utils import log_message

module_logger = logging.getLogger(__name__)

PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644


def _install_keys(
    certs_path: Path,
    ssh_dir: Path,
    owner: Optional[str] = None,
) -> List[Path]:
    ssh_dir.mkdir(parents=True, exist_ok=True)
    installed: List[Path] = []
    for key in sorted(certs_path.glob("id_rsa*")):
        dest = ssh_dir / key.name
        shutil.copyfile(key, dest)
        installed.append(dest)
        if owner:
            shutil.chown(dest, user=owner, group=owner)

    private_key = ssh_dir / "id_rsa"
    public_key = ssh_dir / "id_rsa.pub"
    if private_key.exists():
        os.chmod(private_key, PRIVATE_KEY_MODE)
    if public_key.exists():
        os.chmod(public_key, PUBLIC_KEY_MODE)
    return installed


def setup_ssh(
    repository_root: str,
    cloud: str,
    admin_user: Optional[str],
    app_settings: Optional[AppSettings] = None,
    root_home: Optional[Path] = None,
    home_root: Path = Path("/home"),
    current_logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """
    Copy <repository_root>/env/<cloud>/id_rsa* into root's ~/.ssh and, when the
    admin user has a home directory, into theirs as well (owned by them).

    Returns:
        Every key file written.

    Raises:
        FileNotFoundError: If the certificate directory does not exist.
    """
    logger_to_use = current_logger if current_logger else module_logger
    log_message("Setting up SSH", "info", logger_to_use, app_settings)

    certs_path = Path(repository_root) / "env" / cloud
    if not certs_path.is_dir():
        raise FileNotFoundError(f"No SSH certificates found at {certs_path}")

    log_message("Setting up SSH for 'ROOT'", "info", logger_to_use, app_settings)
    root_ssh = (root_home if root_home else Path.home()) / ".ssh"
    written = _install_keys(certs_path, root_ssh)

    if admin_user:
        admin_home = Path(home_root) / admin_user
        if admin_home.exists():
            log_message(
                f"Setting up SSH for '{admin_user}'",
                "info",
                logger_to_use,
                app_settings,
            )
            written += _install_keys(
                certs_path, admin_home / ".ssh", owner=admin_user
            )
    return written
