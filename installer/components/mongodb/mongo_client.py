"""
Administrative client for a single mongod, built on pymongo.

Every command returns a CommandResult instead of raising, so callers decide
which server errors are acceptable (an already initialized replica set, a
user that already exists, ...).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from pymongo import MongoClient
from pymongo.errors import OperationFailure, PyMongoError

from installer.config import ADMIN_DATABASE

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one administrative command."""

    command: str
    ok: bool
    response: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    code: Optional[int] = None


class MongoAdminClient:
    """
    Direct (non replica-set-aware) connection to one mongod.

    Args:
        host: Host name or address of the server.
        port: Server port.
        username: Optional user to authenticate as (against the admin database).
        password: Password of username.
        timeout_ms: Server selection timeout.
        logger: Logger for command diagnostics.
        client_factory: Callable building the pymongo client; tests pass a mock.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout_ms: int = 15000,
        logger: Optional[logging.Logger] = None,
        client_factory: Callable[..., Any] = MongoClient,
    ):
        self.host = host
        self.port = port
        self.logger = logger or module_logger
        options: Dict[str, Any] = {
            "directConnection": True,
            "serverSelectionTimeoutMS": timeout_ms,
        }
        if username:
            options.update(
                username=username,
                password=password,
                authSource=ADMIN_DATABASE,
            )
        self._client = client_factory(host, port, **options)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def command(self, name: str, value: Any = 1, **kwargs: Any) -> CommandResult:
        """Run an administrative command against the admin database."""
        self.logger.debug(f"Running '{name}' against {self.address}")
        try:
            response = self._client[ADMIN_DATABASE].command(name, value, **kwargs)
        except OperationFailure as e:
            return CommandResult(
                command=name,
                ok=False,
                response=dict(e.details or {}),
                error=str(e),
                code=e.code,
            )
        except PyMongoError as e:
            return CommandResult(command=name, ok=False, error=str(e))
        return CommandResult(command=name, ok=True, response=dict(response))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "MongoAdminClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
