"""Class-level data access facade over a single MongoDB collection.

Subclass MongoModel once per collection and call the operations on the
class itself:

    >>> class Users(MongoModel):
    ...     collection_name = "users"
    >>> Users.insert_one({"name": "ada"})
    >>> Users.find_one({"name": "ada"})

Each operation resolves the cached collection handle, attaches the ambient
session when the operation is session-aware, and delegates to pymongo.
Results are returned exactly as pymongo produces them.

Retried operations (bounded by ``retry_attempts``):
    aggregate, count, delete_one, find, find_one, insert_many, insert_one,
    update_many, update_one

Everything else is attempted once and driver errors propagate unchanged.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence

from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.command_cursor import CommandCursor
from pymongo.cursor import Cursor
from pymongo.database import Database
from pymongo.results import (
    BulkWriteResult,
    DeleteResult,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)

from ._utils import with_retry
from .connection import MongoConnection, get_default_connection
from .exceptions import ModelConfigurationError
from .session import AmbientSessionManager

LOGGER = logging.getLogger(__name__)


class MongoModel:
    """Base class for per-collection facades.

    Class attributes:
        collection_name: Name of the backing collection (required).
        connection: MongoConnection to use; the process default when None.
        retry_attempts: Ceiling for retried operations; the connection
            settings' ``retry_attempts`` when None.
        retry_if: Optional predicate deciding which errors are retried, e.g.
            ``mongo_facade.is_transient_error``. All errors when None.
    """

    collection_name: Optional[str] = None
    connection: Optional[MongoConnection] = None
    retry_attempts: Optional[int] = None
    retry_if: Optional[Callable[[BaseException], bool]] = None

    # -- wiring -------------------------------------------------------------

    @classmethod
    def get_connection(cls) -> MongoConnection:
        return cls.connection if cls.connection is not None else get_default_connection()

    @classmethod
    def ambient(cls) -> AmbientSessionManager:
        return cls.get_connection().ambient

    @classmethod
    def resolve_retry_attempts(cls) -> int:
        if cls.retry_attempts is None:
            return cls.get_connection().settings.retry_attempts
        if cls.retry_attempts < 1:
            raise ModelConfigurationError(
                f"retry_attempts must be >= 1, got {cls.retry_attempts}"
            )
        return cls.retry_attempts

    @classmethod
    def get_collection(cls) -> Collection:
        if not cls.collection_name:
            raise ModelConfigurationError(f"{cls.__name__} must define collection_name")
        return cls.get_connection().collection(cls.collection_name)

    @classmethod
    def get_database(cls, **options) -> Database:
        return cls.get_connection().database(**options)

    @classmethod
    def _options(cls, options: dict) -> dict:
        return cls.ambient().merge(options)

    # -- sessions -----------------------------------------------------------

    @classmethod
    def start_session(cls, **options) -> ClientSession:
        """Start an independent session; the ambient transaction is untouched."""
        return cls.get_connection().start_session(**options)

    @classmethod
    def start_ambient_transaction(cls) -> ClientSession:
        return cls.ambient().start()

    @classmethod
    def commit_ambient_transaction(cls):
        cls.ambient().commit()

    @classmethod
    def cancel_ambient_transaction(cls):
        cls.ambient().cancel()

    @classmethod
    @contextmanager
    def ambient_transaction(cls) -> Iterator[ClientSession]:
        with cls.ambient().transaction() as session:
            yield session

    # -- reads --------------------------------------------------------------

    @classmethod
    @with_retry()
    def aggregate(cls, pipeline: Sequence[Mapping[str, Any]], **options) -> CommandCursor:
        return cls.get_collection().aggregate(pipeline, **cls._options(options))

    @classmethod
    @with_retry()
    def count(cls, filter: Optional[Mapping[str, Any]] = None, **options) -> int:
        """Count matching documents, retrying on failure.

        Same query as count_documents; only this variant is retried.
        """
        return cls.get_collection().count_documents(
            filter or {}, **cls._options(options)
        )

    @classmethod
    def count_documents(cls, filter: Optional[Mapping[str, Any]] = None, **options) -> int:
        return cls.get_collection().count_documents(
            filter or {}, **cls._options(options)
        )

    @classmethod
    def estimated_document_count(cls, **options) -> int:
        return cls.get_collection().estimated_document_count(**options)

    @classmethod
    def distinct(
        cls, key: str, filter: Optional[Mapping[str, Any]] = None, **options
    ) -> list:
        return cls.get_collection().distinct(key, filter, **cls._options(options))

    @classmethod
    @with_retry()
    def find(cls, filter: Optional[Mapping[str, Any]] = None, **options) -> Cursor:
        """Return a cursor over matching documents.

        The cursor is lazy; only building it is covered by the retry, not
        iterating it.
        """
        return cls.get_collection().find(filter, **cls._options(options))

    @classmethod
    @with_retry()
    def find_one(cls, filter: Optional[Mapping[str, Any]] = None, **options) -> Optional[dict]:
        return cls.get_collection().find_one(filter, **cls._options(options))

    @classmethod
    def explain(
        cls, command: Mapping[str, Any], verbosity: str = "queryPlanner", **options
    ) -> dict:
        """Explain a command document, e.g. ``{"find": "users", "filter": {...}}``.

        A command without a target collection is pointed at this model's.
        """
        command = dict(command)
        if not command:
            raise ValueError("explain requires a non-empty command document")
        first = next(iter(command))
        if command[first] in (None, 1, True):
            command[first] = cls.collection_name
        return cls.get_database().command(
            "explain", command, verbosity=verbosity, **cls._options(options)
        )

    # -- writes -------------------------------------------------------------

    @classmethod
    @with_retry()
    def insert_one(cls, document: Mapping[str, Any], **options) -> InsertOneResult:
        return cls.get_collection().insert_one(document, **cls._options(options))

    @classmethod
    @with_retry()
    def insert_many(
        cls, documents: Sequence[Mapping[str, Any]], **options
    ) -> InsertManyResult:
        return cls.get_collection().insert_many(documents, **cls._options(options))

    @classmethod
    @with_retry()
    def update_one(
        cls, filter: Mapping[str, Any], update: Any, **options
    ) -> UpdateResult:
        return cls.get_collection().update_one(filter, update, **cls._options(options))

    @classmethod
    @with_retry()
    def update_many(
        cls, filter: Mapping[str, Any], update: Any, **options
    ) -> UpdateResult:
        return cls.get_collection().update_many(filter, update, **cls._options(options))

    @classmethod
    def replace_one(
        cls, filter: Mapping[str, Any], replacement: Mapping[str, Any], **options
    ) -> UpdateResult:
        return cls.get_collection().replace_one(
            filter, replacement, **cls._options(options)
        )

    @classmethod
    @with_retry()
    def delete_one(cls, filter: Mapping[str, Any], **options) -> DeleteResult:
        return cls.get_collection().delete_one(filter, **cls._options(options))

    @classmethod
    def delete_many(cls, filter: Mapping[str, Any], **options) -> DeleteResult:
        return cls.get_collection().delete_many(filter, **cls._options(options))

    @classmethod
    def find_one_and_delete(cls, filter: Mapping[str, Any], **options) -> Optional[dict]:
        return cls.get_collection().find_one_and_delete(filter, **cls._options(options))

    @classmethod
    def find_one_and_replace(
        cls, filter: Mapping[str, Any], replacement: Mapping[str, Any], **options
    ) -> Optional[dict]:
        return cls.get_collection().find_one_and_replace(
            filter, replacement, **cls._options(options)
        )

    @classmethod
    def find_one_and_update(
        cls, filter: Mapping[str, Any], update: Any, **options
    ) -> Optional[dict]:
        return cls.get_collection().find_one_and_update(
            filter, update, **cls._options(options)
        )

    @classmethod
    def bulk_write(cls, requests: Sequence[Any], **options) -> BulkWriteResult:
        return cls.get_collection().bulk_write(requests, **cls._options(options))

    @classmethod
    def map_reduce(cls, map: Any, reduce: Any, out: Any, **options) -> dict:
        """Run the mapReduce command against this collection.

        ``map`` and ``reduce`` are JavaScript source strings or bson Code.
        """
        return cls.get_database().command(
            "mapReduce",
            cls.collection_name,
            map=map,
            reduce=reduce,
            out=out,
            **cls._options(options),
        )

    # -- indexes and administration -----------------------------------------

    @classmethod
    def create_index(cls, keys: Any, **options) -> str:
        return cls.get_collection().create_index(keys, **options)

    @classmethod
    def create_indexes(cls, indexes: Sequence[Any], **options) -> List[str]:
        return cls.get_collection().create_indexes(indexes, **options)

    @classmethod
    def list_indexes(cls, **options) -> CommandCursor:
        return cls.get_collection().list_indexes(**options)

    @classmethod
    def drop_index(cls, index_or_name: Any, **options):
        cls.get_collection().drop_index(index_or_name, **options)

    @classmethod
    def drop_indexes(cls, **options):
        cls.get_collection().drop_indexes(**options)

    @classmethod
    def drop(cls, **options):
        cls.get_collection().drop(**options)
        LOGGER.info("Dropped collection %s", cls.collection_name)

    @classmethod
    def with_options(cls, **options) -> Collection:
        return cls.get_collection().with_options(**options)

    # -- names --------------------------------------------------------------

    @classmethod
    def get_collection_name(cls) -> str:
        return cls.get_collection().name

    @classmethod
    def get_database_name(cls) -> str:
        return cls.get_collection().database.name

    @classmethod
    def get_namespace(cls) -> str:
        return cls.get_collection().full_name
