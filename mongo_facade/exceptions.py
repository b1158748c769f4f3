"""Custom exceptions for the Mongo facade.

All errors raised by the facade itself derive from FacadeError. Errors raised
by the driver (pymongo.errors.*) are not wrapped unless stated below; callers
of non-retried operations see them unchanged.
"""


class FacadeError(Exception):
    """Base exception for facade-specific errors.

    Subclasses:
        - ConnectionInitializationError
        - RetryBudgetExhausted
        - AmbientSessionError
        - ModelConfigurationError
    """

    pass


class ConnectionInitializationError(FacadeError):
    """The MongoDB client could not be constructed.

    Raised on first use of a connection when the client constructor (or the
    optional startup ping) fails. This is a configuration or connectivity
    problem and is never retried.
    """

    pass


class RetryBudgetExhausted(FacadeError):
    """A retried operation failed on every allowed attempt.

    Attributes:
        operation: Name of the operation that was retried.
        attempts: Number of invocations made before giving up.
        last_error: The exception raised by the final attempt.
    """

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error!r}"
        )


class AmbientSessionError(FacadeError):
    """Invalid ambient transaction state transition.

    Examples:
        - start while an ambient transaction is already active
        - commit while no ambient transaction is active
    """

    pass


class ModelConfigurationError(FacadeError, TypeError, ValueError):
    """A MongoModel subclass is declared incorrectly.

    Examples:
        - collection_name missing
        - retry_attempts below 1
    """

    pass
