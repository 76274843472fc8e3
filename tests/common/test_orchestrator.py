# tests/common/test_orchestrator.py
# -*- coding: utf-8 -*-
"""
Tests for the centralized orchestrator module.
"""

from unittest.mock import MagicMock

import pytest

from common.orchestrator import Orchestrator, Task
from installer.exceptions import InstallationError, ServiceNotReadyError


class TestOrchestrator:
    """Tests for the Orchestrator class."""

    def test_add_task(self):
        """Test adding a task to the orchestrator."""
        orchestrator = Orchestrator(MagicMock(), MagicMock())

        task_func = MagicMock()
        orchestrator.add_task("Install MongoDB", task_func, ["arg1"], {"kwarg1": "value1"}, False)

        assert orchestrator.tasks == [
            Task("Install MongoDB", task_func, ["arg1"], {"kwarg1": "value1"}, False)
        ]

    def test_run_success_injects_settings_and_context(self):
        """Every task receives the settings and the shared context."""
        app_settings = MagicMock()
        orchestrator = Orchestrator(app_settings, MagicMock())

        task1 = MagicMock(return_value="result1")
        orchestrator.add_task("Task 1", task1, ["a"])

        assert orchestrator.run() is True
        task1.assert_called_once_with(
            "a", context=orchestrator.context, app_settings=app_settings
        )
        assert orchestrator.context["Task 1_result"] == "result1"

    def test_run_fatal_failure_exits_with_one(self):
        """A plain exception ends the process with code 1."""
        logger = MagicMock()
        orchestrator = Orchestrator(MagicMock(), logger)
        task1 = MagicMock(side_effect=Exception("Task 1 failed"))
        task2 = MagicMock()
        orchestrator.add_task("Task 1", task1)
        orchestrator.add_task("Task 2", task2)

        with pytest.raises(SystemExit) as excinfo:
            orchestrator.run()

        assert excinfo.value.code == 1
        task2.assert_not_called()
        logger.critical.assert_called_once_with(
            "🔥 Task 'Task 1' failed unexpectedly: Task 1 failed", exc_info=True
        )

    def test_run_fatal_failure_uses_exception_exit_code(self):
        orchestrator = Orchestrator(MagicMock(), MagicMock())
        orchestrator.add_task(
            "Install git",
            MagicMock(side_effect=InstallationError("no git", exit_code=5101)),
        )

        with pytest.raises(SystemExit) as excinfo:
            orchestrator.run()

        assert excinfo.value.code == 5101

    def test_run_service_not_ready_exits_with_one(self):
        logger = MagicMock()
        orchestrator = Orchestrator(MagicMock(), logger)
        orchestrator.add_task("Start MongoDB", MagicMock(side_effect=ServiceNotReadyError("down")))

        with pytest.raises(SystemExit) as excinfo:
            orchestrator.run()

        assert excinfo.value.code == 1
        logger.critical.assert_called_once_with("🔥 Task 'Start MongoDB' failed: down")

    def test_run_failure_non_fatal(self):
        """A non-fatal failure is reported but later tasks still run."""
        logger = MagicMock()
        orchestrator = Orchestrator(MagicMock(), logger)
        task1 = MagicMock(side_effect=Exception("Task 1 failed"))
        task2 = MagicMock()
        orchestrator.add_task("Task 1", task1, fatal=False)
        orchestrator.add_task("Task 2", task2)

        assert orchestrator.run() is False
        task2.assert_called_once()
        logger.warning.assert_any_call("Task 'Task 1' was non-fatal. Continuing orchestration.")

    def test_context_passing(self):
        """Test that context is passed to tasks and can be updated by them."""
        orchestrator = Orchestrator(MagicMock(), MagicMock())

        def task1(context, app_settings, **kwargs):
            context["primary"] = "10.0.0.2:27017"

        def task2(context, app_settings, **kwargs):
            return context["primary"]

        orchestrator.add_task("Task 1", task1)
        orchestrator.add_task("Task 2", task2)

        assert orchestrator.run() is True
        assert orchestrator.context["Task 2_result"] == "10.0.0.2:27017"
