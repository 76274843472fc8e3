# common/orchestrator.py
# -*- coding: utf-8 -*-
"""
Runs the provisioning stages of an entry point in order.

Every stage is called with the shared `context` dictionary and the
`app_settings` as keyword arguments; its return value is stored in the
context under '<stage name>_result'.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from installer.config import EXIT_STAGE_FAILED
from installer.exceptions import ProvisioningError


@dataclass
class Task:
    name: str
    func: Callable[..., Any]
    args: List[Any] = field(default_factory=list)
    kwargs: Dict[str, Any] = field(default_factory=dict)
    fatal: bool = True


class Orchestrator:
    """Ordered task runner with fatal and non-fatal stages."""

    def __init__(
        self,
        app_settings: Any,
        orchestrator_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = orchestrator_logger or logging.getLogger(__name__)
        self.tasks: List[Task] = []
        self.context: Dict[str, Any] = {}

    def add_task(
        self,
        name: str,
        func: Callable[..., Any],
        args: Optional[List[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        fatal: bool = True,
    ) -> Task:
        """
        Queue a stage.

        Args:
            name: Name shown in the stage banner and used as context key.
            func: The stage; called as func(*args, **kwargs, context=..., app_settings=...).
            args: Positional arguments for func.
            kwargs: Keyword arguments for func.
            fatal: Halt the process when the stage fails.
        """
        task = Task(name, func, list(args or []), dict(kwargs or {}), fatal)
        self.tasks.append(task)
        self.logger.debug(f"Task '{name}' added to the queue.")
        return task

    def _fail(self, task: Task, error: Exception) -> None:
        if isinstance(error, ProvisioningError):
            self.logger.critical(f"🔥 Task '{task.name}' failed: {error}")
        else:
            self.logger.critical(
                f"🔥 Task '{task.name}' failed unexpectedly: {error}", exc_info=True
            )
        if task.fatal:
            exit_code = getattr(error, "exit_code", EXIT_STAGE_FAILED)
            self.logger.error(
                f"A fatal error occurred. Halting orchestration and exiting with code {exit_code}."
            )
            sys.exit(exit_code)
        self.logger.warning(f"Task '{task.name}' was non-fatal. Continuing orchestration.")

    def run(self) -> bool:
        """
        Run every queued stage in order.

        A failing fatal stage ends the process with the exception's
        `exit_code`, or 1 when it has none.

        Returns:
            True if every stage succeeded, False if a non-fatal stage failed.
        """
        self.logger.info("Orchestration started.")
        all_ok = True
        for number, task in enumerate(self.tasks, start=1):
            self.logger.info(f"--- Stage {number}: Running task '{task.name}' ---")
            try:
                result = task.func(
                    *task.args,
                    **task.kwargs,
                    context=self.context,
                    app_settings=self.app_settings,
                )
            except Exception as e:
                self._fail(task, e)
                all_ok = False
                continue

            self.context[f"{task.name}_result"] = result
            self.logger.info(f"✅ Task '{task.name}' completed successfully.")

        if all_ok:
            self.logger.info("✨ Orchestration finished successfully.")
        else:
            self.logger.warning("Orchestration finished with non-fatal failures.")
        return all_ok
