"""
Creation of the administrative database account.
"""

import logging
from typing import Callable, Optional

from common.command_utils import get_symbols, log_message
from installer.components.mongodb.mongo_client import MongoAdminClient
from installer.config import ADMIN_USER_ROLES, MONGO_DUPLICATE_USER_CODES
from installer.config_models import AppSettings
from installer.exceptions import AdminUserError

LOCAL_HOST = "127.0.0.1"


class AdminUserProvisioner:
    """Creates the system administrator on the local, not yet secured, node."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        client_factory: Callable[..., MongoAdminClient] = MongoAdminClient,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.client_factory = client_factory

    def create_admin_user(self) -> bool:
        """
        Create the administrator with the cluster administration roles.

        Returns:
            True if the user was created, False if it already existed.

        Raises:
            AdminUserError: If the server rejects the user for another reason.
        """
        admin = self.app_settings.admin
        symbols = get_symbols(self.app_settings)
        log_message(
            "Creating a system administrator", "info", self.logger, self.app_settings
        )

        with self.client_factory(
            LOCAL_HOST,
            self.app_settings.mongo.port,
            timeout_ms=self.app_settings.service.driver_timeout_ms,
            logger=self.logger,
        ) as client:
            result = client.command(
                "createUser",
                admin.username,
                pwd=admin.password,
                roles=ADMIN_USER_ROLES,
            )

        if result.ok:
            log_message(
                f"{symbols.get('success', '✅')} Administrator '{admin.username}' created.",
                "success",
                self.logger,
                self.app_settings,
            )
            return True

        if result.code in MONGO_DUPLICATE_USER_CODES:
            log_message(
                f"{symbols.get('warning', '!')} Administrator '{admin.username}' already exists.",
                "warning",
                self.logger,
                self.app_settings,
            )
            return False

        raise AdminUserError(
            f"Could not create administrator '{admin.username}': {result.error}"
        )
