# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional

# Import AppSettings for type hinting and SYMBOLS_DEFAULT for fallback
from installer.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)


def log_message(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a message at the requested level.

    Args:
        message (str): The log message to be recorded.
        level (str): The severity level of the log message. Defaults to "info". Common options
            include "debug", "info", "success", "warning", "error", and "critical".
            "success" is logged at INFO.
        current_logger (Optional[logging.Logger]): A logger instance to use for logging. If not provided,
            a module-level logger will be used.
        app_settings (Optional[AppSettings]): Optional application settings that can influence logging behavior.
        exc_info (bool): Indicator to include exception details in the log. By default, this is set to False.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the logging symbols of the settings, or the defaults."""
    if app_settings and getattr(app_settings, "symbols", None):
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def _get_elevated_command_prefix() -> List[str]:
    """
    Determines the command prefix that ensures elevated privileges when required.

    Returns:
        List[str]: ["sudo"] if the effective user is not root, otherwise an empty list.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def _log_output(
    output: Optional[str],
    label: str,
    level: str,
    logger: logging.Logger,
    app_settings: Optional[AppSettings],
) -> None:
    if output and output.strip():
        log_message(f"   {label}: {output.strip()}", level, logger, app_settings)


def run_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    trace: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a command (an argv list, never through a shell) and log what happened.

    Args:
        command: The program and its arguments.
        app_settings: Settings providing logging symbols.
        check: Raise CalledProcessError on a non-zero exit status.
        capture_output: Capture stdout/stderr; both are logged at DEBUG.
        cmd_input: Text fed to the command's standard input.
        current_logger: Logger to use instead of the module logger.
        cwd: Working directory of the command.
        env: Environment of the command. Defaults to the inherited environment.
        trace: Echo the command as "+ <command>" at INFO before running it,
            the way `set -x` does. Without it the command is logged at DEBUG.
            Tracing applies to this call only.

    Returns:
        The completed process.

    Raises:
        subprocess.CalledProcessError: If check is True and the command fails.
        FileNotFoundError: If the executable is not found.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    argv = list(command)
    where = f" (in {cwd})" if cwd else ""

    if trace:
        log_message(
            f"+ {subprocess.list2cmdline(argv)}{where}",
            "info",
            effective_logger,
            app_settings,
        )
    else:
        log_message(
            f"{symbols.get('gear', '⚙️')} Executing: {subprocess.list2cmdline(argv)}{where}",
            "debug",
            effective_logger,
            app_settings,
        )

    try:
        result = subprocess.run(
            argv,
            check=check,
            capture_output=capture_output,
            text=True,
            input=cmd_input,
            cwd=cwd,
            env=env,
        )
    except subprocess.CalledProcessError as e:
        log_message(
            f"{symbols.get('error', '❌')} Command `{subprocess.list2cmdline(argv)}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        _log_output(e.stdout, "stdout", "error", effective_logger, app_settings)
        _log_output(e.stderr, "stderr", "error", effective_logger, app_settings)
        raise
    except FileNotFoundError as e:
        log_message(
            f"{symbols.get('error', '❌')} Command not found: {e.filename or argv[0]}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise

    if capture_output:
        _log_output(result.stdout, "stdout", "debug", effective_logger, app_settings)
        _log_output(result.stderr, "stderr", "debug", effective_logger, app_settings)
    return result


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    trace: bool = False,
) -> subprocess.CompletedProcess:
    """
    Executes a command with elevated permissions, prefixing it with sudo when the
    current process is not already running as root.

    Args:
        command: The command to execute, provided as a list of strings.
        app_settings: The application settings that may influence the command execution.
        check: If True, raises an exception if the command execution fails.
        capture_output: If True, captures the output of the command.
        cmd_input: The input to pass to the command via standard input.
        current_logger: A logger instance to log any output or errors during execution.
        cwd: The working directory for the command execution.
        env: Environment variables to use during command execution.
        trace: Echo the command before running it (see run_command).

    Returns:
        subprocess.CompletedProcess: The result of the command execution.
    """
    prefix = _get_elevated_command_prefix()
    elevated_command_list = prefix + list(command)
    return run_command(
        elevated_command_list,
        app_settings,
        check=check,
        capture_output=capture_output,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
        trace=trace,
    )


def command_exists(command_name: str) -> bool:
    """
    Check if a command exists in the system's PATH.

    Parameters:
        command_name (str): The name of the command to check for existence.

    Returns:
        bool: True if the command is found in the system's PATH, False otherwise.
    """
    return shutil.which(command_name) is not None


def check_package_installed(
    package_name: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Checks if a given package is installed on the system using `dpkg-query`.

    Args:
        package_name (str): The name of the package to check for installation status.
        app_settings (Optional[AppSettings]): Optional application settings containing
            configurations like symbols for different log types.
        current_logger (Optional[logging.Logger]): Logger to use for logging messages.

    Returns:
        bool: True if dpkg reports "install ok installed" for the package.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["dpkg-query", "-W", "-f=${Status}", package_name],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
        return (
            result.returncode == 0 and "install ok installed" in result.stdout
        )
    except FileNotFoundError:
        log_message(
            f"{symbols.get('error', '❌')} dpkg-query command not found. Cannot check package '{package_name}'.",
            "error",
            logger_to_use,
            app_settings,
        )
        return False
