"""Per-model MongoDB data access facade built on pymongo.

This package provides a class-level facade over pymongo collections with:
- Lazy, lock-guarded client construction and a per-name collection cache
- An ambient transaction that is attached to operations automatically
- Bounded retry on a fixed subset of operations

Usage:
    Configure the connection via environment variables:
    export MONGO_URL="mongodb://localhost:27017/?replicaSet=rs0"
    export MONGO_DB_NAME="app"

    from mongo_facade import MongoModel

    class Orders(MongoModel):
        collection_name = "orders"

    with Orders.ambient_transaction():
        Orders.insert_one({"sku": "A1", "qty": 2})
"""

__version__ = "1.0.0"

from ._utils import DEFAULT_RETRY_ATTEMPTS, is_transient_error, with_retry
from .config import MongoSettings
from .connection import MongoConnection, get_default_connection, set_default_connection
from .exceptions import (
    AmbientSessionError,
    ConnectionInitializationError,
    FacadeError,
    ModelConfigurationError,
    RetryBudgetExhausted,
)
from .model import MongoModel
from .session import AmbientSessionManager

__all__ = [
    "AmbientSessionError",
    "AmbientSessionManager",
    "ConnectionInitializationError",
    "DEFAULT_RETRY_ATTEMPTS",
    "FacadeError",
    "MongoConnection",
    "MongoModel",
    "ModelConfigurationError",
    "MongoSettings",
    "RetryBudgetExhausted",
    "get_default_connection",
    "is_transient_error",
    "set_default_connection",
    "with_retry",
]
