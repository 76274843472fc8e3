"""
Host preparation steps run before MongoDB is installed.
"""

import logging
from pathlib import Path
from typing import Optional

from common.command_utils import get_symbols, log_message, run_elevated_command
from common.debian.apt_manager import AptManager
from common.file_utils import backup_file, write_text_file
from common.system_utils import ensure_hostname_in_hosts
from installer.config import (
    HOSTS_FILE_PATH,
    POSTFIX_PRESEED,
    RC_LOCAL_PATH,
    RC_LOCAL_THP_BLOCK,
    THP_DEFRAG_PATH,
    THP_ENABLED_PATH,
)
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def _insert_before_last_line(content: str, block: str) -> str:
    lines = content.splitlines(keepends=True)
    if not lines:
        return block
    return "".join(lines[:-1]) + block + lines[-1]


def tune_memory(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    thp_paths=(THP_ENABLED_PATH, THP_DEFRAG_PATH),
    rc_local_path: Path = RC_LOCAL_PATH,
) -> bool:
    """
    Disable transparent huge pages now and on every boot.

    The boot-time block goes in front of the last line of rc.local
    ('exit 0'), once; the file is backed up before it is changed.

    Returns:
        True if rc.local was changed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    log_message(
        "Disabling THP (transparent huge pages)", "info", logger_to_use, app_settings
    )

    for path in thp_paths:
        path = Path(path)
        if path.exists():
            path.write_text("never\n", encoding="utf-8")
        else:
            log_message(
                f"{symbols.get('warning', '!')} {path} not present; skipping.",
                "warning",
                logger_to_use,
                app_settings,
            )

    rc_local = Path(rc_local_path)
    if not rc_local.is_file():
        log_message(
            f"{symbols.get('warning', '!')} {rc_local} not found; THP will be re-enabled after a reboot.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    content = rc_local.read_text(encoding="utf-8")
    if RC_LOCAL_THP_BLOCK in content:
        log_message(
            f"{rc_local} already disables THP at boot.",
            "debug",
            logger_to_use,
            app_settings,
        )
        return False

    backup_file(rc_local, app_settings, logger_to_use)
    write_text_file(
        rc_local,
        _insert_before_last_line(content, RC_LOCAL_THP_BLOCK),
        app_settings,
        current_logger=logger_to_use,
    )
    return True


def tune_system(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    hostname: Optional[str] = None,
    hosts_path: Path = HOSTS_FILE_PATH,
) -> bool:
    """Make the local host name resolvable through /etc/hosts."""
    logger_to_use = current_logger if current_logger else module_logger
    log_message(
        "Adding local machine for IP address resolution",
        "info",
        logger_to_use,
        app_settings,
    )
    return ensure_hostname_in_hosts(
        app_settings,
        hostname=hostname,
        hosts_path=hosts_path,
        current_logger=logger_to_use,
    )


def configure_datadisks(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    apt_manager: Optional[AptManager] = None,
    trace: bool = False,
) -> None:
    """
    Stripe the attached data disks with the external disk utility.

    The utility may install mdadm, which pulls in postfix; postfix is
    installed first with a preseeded answer so nothing prompts.

    Raises:
        subprocess.CalledProcessError: If any step fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    apt = apt_manager or AptManager(logger=logger_to_use, trace=trace)
    log_message(
        "Formatting and configuring the data disks",
        "info",
        logger_to_use,
        app_settings,
    )
    apt.preseed(POSTFIX_PRESEED, app_settings)
    log_message("installing postfix...", "info", logger_to_use, app_settings)
    apt.install("postfix", app_settings)

    run_elevated_command(
        [
            "bash",
            app_settings.host.disk_utility_script,
            "-b",
            app_settings.mongo.data_disks,
            "-s",
        ],
        app_settings,
        current_logger=logger_to_use,
        trace=trace,
    )
