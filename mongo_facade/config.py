"""Connection settings for the Mongo facade.

Environment Variables:
    MONGO_URL: MongoDB connection URI (required)
    MONGO_DB_NAME: Database name (required)
    MONGO_SERVER_SELECTION_TIMEOUT_MS: Server selection timeout (default: 5000)
    MONGO_CONNECT_TIMEOUT_MS: Connect timeout (default: 10000)
    MONGO_MAX_POOL_SIZE: Connection pool size (default: 50)
    MONGO_TLS_CA_FILE: Path to TLS certificate bundle (optional)
    MONGO_RETRY_ATTEMPTS: Attempts made by retried operations (default: 15)
    MONGO_PING_ON_CONNECT: Ping the server when the client is built (default: false)

Example:
    >>> import os
    >>> os.environ["MONGO_URL"] = "mongodb://localhost:27017/?replicaSet=rs0"
    >>> os.environ["MONGO_DB_NAME"] = "app"
    >>> settings = MongoSettings.from_env()
    >>> settings.connection_options()["maxPoolSize"]
    50
"""

import os
from typing import Optional

from ._utils import DEFAULT_RETRY_ATTEMPTS

_TRUE_VALUES = ("1", "true", "yes", "on")


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


class MongoSettings:
    """Connection URL, database name and client options."""

    def __init__(
        self,
        url: str,
        database_name: str,
        server_selection_timeout_ms: int = 5000,
        connect_timeout_ms: int = 10000,
        max_pool_size: int = 50,
        tls_ca_file: Optional[str] = None,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        ping_on_connect: bool = False,
    ):
        if not url:
            raise ValueError("MongoDB connection URL is required (MONGO_URL)")
        if not database_name:
            raise ValueError("MongoDB database name is required (MONGO_DB_NAME)")
        if retry_attempts < 1:
            raise ValueError(f"retry_attempts must be >= 1, got {retry_attempts}")

        self.url = url
        self.database_name = database_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.connect_timeout_ms = connect_timeout_ms
        self.max_pool_size = max_pool_size
        self.tls_ca_file = tls_ca_file
        self.retry_attempts = retry_attempts
        self.ping_on_connect = ping_on_connect

    @classmethod
    def from_env(cls) -> "MongoSettings":
        """Read settings from MONGO_* environment variables.

        Raises:
            ValueError: If a required variable is missing or a number is malformed
        """
        url = os.getenv("MONGO_URL")
        if not url:
            raise ValueError("MONGO_URL environment variable is required")

        database_name = os.getenv("MONGO_DB_NAME")
        if not database_name:
            raise ValueError("MONGO_DB_NAME environment variable is required")

        return cls(
            url=url,
            database_name=database_name,
            server_selection_timeout_ms=_int_from_env(
                "MONGO_SERVER_SELECTION_TIMEOUT_MS", 5000
            ),
            connect_timeout_ms=_int_from_env("MONGO_CONNECT_TIMEOUT_MS", 10000),
            max_pool_size=_int_from_env("MONGO_MAX_POOL_SIZE", 50),
            tls_ca_file=os.getenv("MONGO_TLS_CA_FILE") or None,
            retry_attempts=_int_from_env("MONGO_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS),
            ping_on_connect=os.getenv("MONGO_PING_ON_CONNECT", "false").lower()
            in _TRUE_VALUES,
        )

    def connection_options(self) -> dict:
        """Keyword arguments for the MongoClient constructor."""
        options = {
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "connectTimeoutMS": self.connect_timeout_ms,
            "maxPoolSize": self.max_pool_size,
        }

        if self.tls_ca_file:
            options.update(
                {
                    "tls": True,
                    "tlsCAFile": self.tls_ca_file,
                }
            )

        return options

    def __repr__(self) -> str:
        # The URL may carry credentials
        return (
            f"MongoSettings(database_name={self.database_name!r}, "
            f"retry_attempts={self.retry_attempts})"
        )
