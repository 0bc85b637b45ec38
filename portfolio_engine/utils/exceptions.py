"""Custom exceptions for Portfolio Engine.

This module defines the exception hierarchy for the application. Portfolio
operation failures carry a stable ``code`` tag so callers can tell rejected
operations apart without matching on message text.
"""


class PortfolioEngineError(Exception):
    """Base exception for all Portfolio Engine errors.

    All custom exceptions in the application should inherit from this class.
    """

    pass


class ConfigurationError(PortfolioEngineError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Unknown storage backend
        - Limits outside their allowed range
        - Configuration file not found
    """

    pass


class StorageError(PortfolioEngineError):
    """Raised when state store operations fail.

    Examples:
        - Database connection failed
        - SQL statement failed
        - Transaction could not be committed
    """

    pass


class PortfolioError(PortfolioEngineError):
    """Base exception for rejected portfolio operations.

    Every subclass defines ``code``, the tag reported to the caller.
    A rejected operation never leaves stored state partially updated.
    """

    code = "PortfolioError"


class NotAuthorizedError(PortfolioError):
    """Raised when the caller is not allowed to perform the operation.

    Examples:
        - Caller is not the portfolio owner
        - Caller is not the administrator
    """

    code = "NotAuthorized"


class InvalidPortfolioError(PortfolioError):
    """Raised when a portfolio is unknown, or inactive where activity is required."""

    code = "InvalidPortfolio"


class InvalidTokenError(PortfolioError):
    """Raised when an allocation or an initial token argument is missing.

    Examples:
        - Fewer than two tokens supplied on creation
        - No allocation stored for the addressed slot
    """

    code = "InvalidToken"


class InvalidTokenIdError(PortfolioError):
    """Raised when a slot index is outside the portfolio's slot range."""

    code = "InvalidTokenId"


class InvalidPercentageError(PortfolioError):
    """Raised when a percentage is outside [0, 10000] basis points."""

    code = "InvalidPercentage"


class MaxSlotsExceededError(PortfolioError):
    """Raised when more tokens are requested than a portfolio has slots."""

    code = "MaxSlotsExceeded"


class LengthMismatchError(PortfolioError):
    """Raised when token and percentage lists differ in length."""

    code = "LengthMismatch"


class UserStorageFailedError(PortfolioError):
    """Raised when an account's portfolio index is already full."""

    code = "UserStorageFailed"


class InvalidTickError(PortfolioError):
    """Raised when the current tick is earlier than a portfolio's recorded tick.

    Examples:
        - Rebalancing at a tick before the last recorded rebalance
    """

    code = "InvalidTick"
