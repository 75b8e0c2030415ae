"""
Structured error types for the cashflow backend.

Provides a typed hierarchy of errors with metadata for error
categorization, operator-facing logs, and root cause analysis through
error chaining.

Every error raised by cashflow library code extends ``CashflowError`` and
carries:
- **Category:** What kind of error (config, database, validation, ...)
- **Retryable:** Whether the operation can be retried automatically
- **Context:** Structured metadata (version, filename, url, ...)
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different domains
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry metadata for logging
    - **Error Chaining:** Preserve original exceptions while adding context
    - **No exits in libraries:** Errors travel up to the entry point, which
      decides whether the process terminates

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       CashflowError                          │
        │  (category, retryable, context, cause)                       │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError          DatabaseError       MigrationError     │
        │  (CONFIG)             (DATABASE)                │            │
        │       │                    │                    │            │
        │  InvalidConfigError   DatabaseConnection  MigrationDirectory │
        │                       Error               MigrationFile      │
        │                                           DuplicateMigration │
        │                                           LedgerError        │
        │                                           MigrationExecution │
        └─────────────────────────────────────────────────────────────┘

Examples:
    Attaching context to an error:

    >>> error = LedgerError("applied-check failed", context=ErrorContext(version=3))
    >>> error.context.version
    3

    Chaining errors for root cause:

    >>> try:
    ...     raise OSError("permission denied")
    ... except OSError as e:
    ...     raise MigrationDirectoryError("cannot read migrations", cause=e)
    Traceback (most recent call last):
    ...
    MigrationDirectoryError: cannot read migrations

Guardrails:
    ❌ DON'T: Use generic Exception - loses all metadata
    ✅ DO: Use the appropriate CashflowError subclass

    ❌ DON'T: Call sys.exit() from library code
    ✅ DO: Raise or return the error; the CLI / entry point exits

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, migrations,
    cashflow-core, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    - **Infrastructure:** DATABASE
    - **Data errors:** VALIDATION
    - **Configuration (never retryable):** CONFIG
    - **Internal errors:** INTERNAL

    Examples:
        >>> ErrorCategory.DATABASE.value
        'DATABASE'
    """

    # Infrastructure errors
    DATABASE = "DATABASE"         # Connectivity, statement execution

    # Data errors
    VALIDATION = "VALIDATION"     # Constraint violations

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing config, invalid settings

    # Internal errors
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover the metadata the migration engine and the store
    adapters attach; anything else lands in ``metadata``. ``to_dict()``
    serializes the non-None fields for logging.

    Examples:
        >>> ctx = ErrorContext(version=2, filename="002_add_email_index.sql")
        >>> ctx.to_dict()
        {'version': 2, 'filename': '002_add_email_index.sql'}

    Attributes:
        version: Migration version the error relates to
        filename: Migration file name
        path: Filesystem path (directory or file)
        url: Database URL (credentials redacted by the caller)
        table: Table involved in the failing statement
        metadata: Additional key-value pairs
    """

    version: int | None = None
    filename: str | None = None
    path: str | None = None
    url: str | None = None
    table: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["version", "filename", "path", "url", "table"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CashflowError(Exception):
    """
    Base exception for all cashflow errors.

    Subclasses set ``default_category`` and ``default_retryable`` class
    attributes to provide sensible defaults for their domain.

    Examples:
        >>> error = CashflowError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False

        Serializing for logging:

        >>> d = CashflowError("boom", category=ErrorCategory.CONFIG).to_dict()
        >>> d["category"]
        'CONFIG'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CashflowError):
    """
    Configuration error.

    Never retryable - configuration must be fixed and the process restarted.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(CashflowError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class DatabaseConnectionError(DatabaseError):
    """Could not open or ping the database."""

    pass


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(CashflowError):
    """
    Base class for schema migration failures.

    Every migration error is fatal for startup: the service must not begin
    serving requests against a store whose migration state is unknown.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class MigrationDirectoryError(MigrationError):
    """Migrations directory is missing or unreadable."""

    default_category = ErrorCategory.CONFIG


class MigrationFileError(MigrationError):
    """A discovered migration file could not be read."""

    default_category = ErrorCategory.CONFIG


class DuplicateMigrationError(MigrationError):
    """Two migration files declare the same version."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, version: int, filenames: list[str]):
        self.version = version
        self.filenames = filenames
        super().__init__(
            f"Duplicate migration version {version}: {', '.join(filenames)}",
            context=ErrorContext(version=version),
        )


class LedgerError(MigrationError):
    """Ledger table creation, lookup or insert failed."""

    pass


class MigrationExecutionError(MigrationError):
    """A migration body failed to execute against the store."""

    pass


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CashflowError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    # Database
    "DatabaseError",
    "DatabaseConnectionError",
    # Migrations
    "MigrationError",
    "MigrationDirectoryError",
    "MigrationFileError",
    "DuplicateMigrationError",
    "LedgerError",
    "MigrationExecutionError",
]
