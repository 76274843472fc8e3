# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions, such as creating owned directories, writing
generated files and backing up files before they are edited.
"""

import datetime
import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Union

from installer.config_models import AppSettings

from .command_utils import get_symbols, log_message

module_logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_directory(
    dir_path: PathLike,
    app_settings: Optional[AppSettings],
    owner: Optional[str] = None,
    group: Optional[str] = None,
    mode: Optional[int] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Create a directory (and parents) if missing, then apply ownership and mode.

    An existing directory is not an error; its ownership and mode are
    re-applied so repeated runs converge on the same state.
    """
    logger_to_use = current_logger if current_logger else module_logger
    path = Path(dir_path)
    if not path.is_dir():
        log_message(
            f"Creating directory {path}", "debug", logger_to_use, app_settings
        )
    path.mkdir(parents=True, exist_ok=True)
    if owner or group:
        shutil.chown(path, user=owner, group=group)
    if mode is not None:
        os.chmod(path, mode)
    return path


def chown_recursive(
    root: PathLike,
    owner: str,
    group: Optional[str],
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Give a directory tree, including root itself, to owner:group."""
    logger_to_use = current_logger if current_logger else module_logger
    root_path = Path(root)
    log_message(
        f"Setting ownership of {root_path} to {owner}:{group or owner}",
        "debug",
        logger_to_use,
        app_settings,
    )
    shutil.chown(root_path, user=owner, group=group or owner)
    for dirpath, dirnames, filenames in os.walk(root_path):
        for name in dirnames + filenames:
            shutil.chown(os.path.join(dirpath, name), user=owner, group=group or owner)


def write_text_file(
    file_path: PathLike,
    content: str,
    app_settings: Optional[AppSettings],
    mode: Optional[int] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Write content to file_path, replacing whatever was there.

    The content is written verbatim (no newline translation), so identical
    inputs always produce byte-identical files.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)
    if mode is not None:
        os.chmod(path, mode)
    log_message(
        f"{symbols.get('success', '✅')} Wrote {path}",
        "debug",
        logger_to_use,
        app_settings,
    )
    return path


def write_secret_file(
    file_path: PathLike,
    content: str,
    app_settings: Optional[AppSettings],
    owner: Optional[str] = None,
    group: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Write content to a file readable only by its owner (mode 600).

    The file is created with mode 600 before any byte is written, and the
    mode is forced again if the file already existed with looser bits.
    """
    logger_to_use = current_logger if current_logger else module_logger
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)
    os.chmod(path, 0o600)
    if owner or group:
        shutil.chown(path, user=owner, group=group)
    log_message(
        f"Wrote secret file {path} (mode 600)",
        "info",
        logger_to_use,
        app_settings,
    )
    return path


def force_symlink(
    target: PathLike,
    link_path: PathLike,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Point link_path at target, replacing an existing link or file there.

    Raises:
        IsADirectoryError: If link_path is a real directory.
    """
    logger_to_use = current_logger if current_logger else module_logger
    link = Path(link_path)
    if link.is_symlink() or link.is_file():
        link.unlink()
    elif link.is_dir():
        raise IsADirectoryError(
            f"Cannot replace directory {link} with a symlink to {target}"
        )
    link.parent.mkdir(parents=True, exist_ok=True)
    link.symlink_to(target)
    log_message(
        f"Linked {link} -> {target}", "debug", logger_to_use, app_settings
    )
    return link


def backup_file(
    file_path: PathLike,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[Path]:
    """
    Backup a file to '<file>.<YYYYmmddHHMMSS>' next to it.

    Returns:
        The backup path, or None when the file does not exist and nothing
        needed backing up.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    source = Path(file_path)

    if not source.is_file():
        log_message(
            f"{symbols.get('info', 'ℹ️')} File {source} does not exist or is not a regular file. No backup needed.",
            "info",
            logger_to_use,
            app_settings,
        )
        return None

    timestamp = datetime.datetime.now().strftime("%Y%m%d%H%M%S")
    backup_path = source.with_name(f"{source.name}.{timestamp}")
    shutil.copy2(source, backup_path)
    log_message(
        f"{symbols.get('success', '✅')} Backed up {source} to {backup_path}",
        "success",
        logger_to_use,
        app_settings,
    )
    return backup_path
