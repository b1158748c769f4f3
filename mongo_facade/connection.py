"""Lazily built MongoDB client and per-name collection cache.

A MongoConnection owns one pymongo client, the collection handles created
from it, and the ambient session manager that models bound to it share.
Nothing touches the network until the first operation needs the client.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.database import Database

from .config import MongoSettings
from .exceptions import ConnectionInitializationError
from .session import AmbientSessionManager

LOGGER = logging.getLogger(__name__)


class MongoConnection:
    """Process-lifetime holder of a client and its collection handles.

    Args:
        settings: Connection settings. Read from the environment on first use
            when omitted.
        client_factory: Callable building the client from ``(url, **options)``.
            Defaults to pymongo's MongoClient.
    """

    def __init__(
        self,
        settings: Optional[MongoSettings] = None,
        client_factory: Callable[..., MongoClient] = MongoClient,
    ):
        self._settings = settings
        self._client_factory = client_factory
        self._client: Optional[MongoClient] = None
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.RLock()
        self.ambient = AmbientSessionManager(self)

    @property
    def settings(self) -> MongoSettings:
        if self._settings is None:
            with self._lock:
                if self._settings is None:
                    try:
                        self._settings = MongoSettings.from_env()
                    except ValueError as e:
                        LOGGER.critical("Invalid MongoDB settings: %s", e)
                        raise ConnectionInitializationError(str(e)) from e
        return self._settings

    @property
    def initialized(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> MongoClient:
        """The pymongo client, built on first access.

        Raises:
            ConnectionInitializationError: If the client cannot be built
        """
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._connect()
        return self._client

    def _connect(self) -> MongoClient:
        settings = self.settings
        try:
            client = self._client_factory(
                settings.url, **settings.connection_options()
            )
        except Exception as e:
            LOGGER.critical("Failed to create MongoDB client: %s", e)
            raise ConnectionInitializationError(
                f"MongoDB client initialization failed: {e}"
            ) from e

        if settings.ping_on_connect:
            try:
                client.admin.command("ping")
            except Exception as e:
                LOGGER.critical("MongoDB ping failed: %s", e)
                client.close()
                raise ConnectionInitializationError(
                    f"MongoDB connection failed: {e}"
                ) from e

        LOGGER.info("Connected to MongoDB database: %s", settings.database_name)
        return client

    def database(self, **options) -> Database:
        return self.client.get_database(self.settings.database_name, **options)

    def collection(self, name: str) -> Collection:
        """Return the cached handle for ``name``, creating it if needed.

        Repeated calls with the same name return the same object for the
        lifetime of the connection.
        """
        cached = self._collections.get(name)
        if isinstance(cached, Collection):
            return cached

        with self._lock:
            cached = self._collections.get(name)
            if not isinstance(cached, Collection):
                cached = self.client[self.settings.database_name][name]
                self._collections[name] = cached
                LOGGER.debug(
                    "Created collection handle %s.%s",
                    self.settings.database_name,
                    name,
                )
            return cached

    def cached_collections(self) -> List[str]:
        return sorted(self._collections)

    def start_session(self, **options) -> ClientSession:
        """Start an independent session the caller ends itself.

        The ambient session is not touched.
        """
        return self.client.start_session(**options)

    def close(self):
        """Close the client and forget every cached handle."""
        with self._lock:
            client = self._client
            self._client = None
            self._collections.clear()

        if client is None:
            return

        try:
            client.close()
            LOGGER.info("MongoDB connection closed")
        except Exception as e:
            LOGGER.warning("Error closing MongoDB connection: %s", e)


_default_connection: Optional[MongoConnection] = None
_default_lock = threading.Lock()


def get_default_connection() -> MongoConnection:
    """Return the process-wide connection used by models that name none."""
    global _default_connection
    if _default_connection is None:
        with _default_lock:
            if _default_connection is None:
                _default_connection = MongoConnection()
    return _default_connection


def set_default_connection(connection: Optional[MongoConnection]):
    """Replace the process-wide connection. None resets it to lazy creation."""
    global _default_connection
    with _default_lock:
        _default_connection = connection
