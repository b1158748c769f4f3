"""Ambient transaction shared by every model bound to one connection.

Once started, the ambient session is attached to the options of every
session-aware operation until it is committed or cancelled, so callers never
pass it explicitly. Only one ambient session exists per connection. Code that
needs concurrent transactions should use ``MongoConnection.start_session()``
and pass the session itself.
"""

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional

from pymongo.client_session import ClientSession
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from .exceptions import AmbientSessionError

if TYPE_CHECKING:
    from .connection import MongoConnection

LOGGER = logging.getLogger(__name__)

SESSION_KEY = "session"


class AmbientSessionManager:
    """Start, commit and cancel the connection's ambient transaction."""

    def __init__(self, connection: "MongoConnection"):
        self._connection = connection
        self._session: Optional[ClientSession] = None
        self._lock = threading.RLock()

    @property
    def session(self) -> Optional[ClientSession]:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None

    def start(self) -> ClientSession:
        """Start a session and begin a snapshot/majority transaction on it.

        Raises:
            AmbientSessionError: If an ambient transaction is already active
        """
        with self._lock:
            if self._session is not None:
                raise AmbientSessionError("An ambient transaction is already active")

            session = self._connection.start_session()
            try:
                session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern(w="majority"),
                )
            except Exception:
                session.end_session()
                raise

            self._session = session
            LOGGER.info("Ambient transaction started")
            return session

    def cancel(self):
        """Abort the ambient transaction, if any, and forget it.

        Abort errors are logged and dropped: the transaction may already have
        been committed or the connection lost.
        """
        with self._lock:
            session = self._session
            if session is None:
                return

            try:
                session.abort_transaction()
            except Exception as e:
                LOGGER.warning("Ignoring error while aborting ambient transaction: %s", e)

            self._end(session)
            LOGGER.info("Ambient transaction cancelled")

    def commit(self):
        """Commit the ambient transaction and forget it.

        The session is ended and cleared even when the commit raises; the
        commit error itself propagates.

        Raises:
            AmbientSessionError: If no ambient transaction is active
        """
        with self._lock:
            session = self._session
            if session is None:
                raise AmbientSessionError("No ambient transaction to commit")

            try:
                session.commit_transaction()
            except Exception as e:
                LOGGER.error("Ambient transaction commit failed: %s", e)
                raise
            finally:
                self._end(session)

            LOGGER.info("Ambient transaction committed")

    def _end(self, session: ClientSession):
        self._session = None
        try:
            session.end_session()
        except Exception as e:
            LOGGER.warning("Error ending ambient session: %s", e)

    def merge(self, options: dict) -> dict:
        """Return ``options`` with the ambient session attached, if one exists.

        The input dict is never modified. An explicit session already present
        in ``options`` wins.
        """
        session = self._session
        if session is None or options.get(SESSION_KEY) is not None:
            return options

        merged = dict(options)
        merged[SESSION_KEY] = session
        LOGGER.debug("Attached ambient session to operation options")
        return merged

    @contextmanager
    def transaction(self) -> Iterator[ClientSession]:
        """Run a block inside the ambient transaction.

        Commits on normal exit, cancels and re-raises on error.

        Example:
            >>> with connection.ambient.transaction():
            ...     Orders.insert_one({"sku": "A1"})
            ...     Stock.update_one({"sku": "A1"}, {"$inc": {"qty": -1}})
        """
        session = self.start()
        try:
            yield session
        except BaseException:
            self.cancel()
            raise
        self.commit()
