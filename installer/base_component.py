"""
Base component class for all component modules.

This module provides the base class that all component modules must inherit from.
It defines the common interface that all components must implement.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from installer.config_models import AppSettings


class BaseComponent(ABC):
    """
    Base class for all component modules.

    This class defines the common interface that all component modules must
    implement: installing and configuring a component, and checking whether
    either has already happened.
    """

    # Class-level metadata that can be overridden by subclasses or set by the registry decorator
    metadata: Dict[str, Any] = {
        "dependencies": [],  # List of component names that this component depends on
        "error_code": 1,  # Exit code reported when installation fails
        "description": "",  # Description of the component
    }

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        trace: bool = False,
    ):
        """
        Initialize the component.

        Args:
            app_settings: The application settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
            trace: Echo every command the component runs.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.trace = trace

    @abstractmethod
    def install(self) -> bool:
        """
        Install the component.

        Returns:
            True if something was installed, False if it was already present.

        Raises:
            InstallationError: If the installation failed.
        """
        pass

    @abstractmethod
    def is_installed(self) -> bool:
        """
        Check if the component is installed.

        Returns:
            True if the component is installed, False otherwise.
        """
        pass

    def configure(self) -> bool:
        """
        Configure the component. Most components need no configuration.

        Returns:
            True if the configuration was successful.
        """
        return True

    def is_configured(self) -> bool:
        return True

    def get_error_code(self) -> int:
        return int(self.metadata.get("error_code", 1))
