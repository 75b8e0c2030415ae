"""
Result envelope for consistent success/failure handling.

Provides a typed ``Result[T]`` pattern that makes success/failure explicit
in the type system and carries the error for failures. Startup code
returns ``Ok(value)`` or ``Err(error)`` up to the process entry point, which
alone decides whether to terminate.

Manifesto:
    - **Explicit over Implicit:** No hidden exceptions that callers might miss
    - **Exit at the edge:** Library code never terminates the process; the
      entry point inspects the Result and exits

Architecture:
    ::

        ┌─────────────────────────────────────────────┐
        │                  Result[T]                   │
        ├──────────────────────┬──────────────────────┤
        │        Ok[T]         │        Err[T]        │
        │  • value: T          │  • error: Exception  │
        │  • unwrap() → value  │  • unwrap() raises   │
        └──────────────────────┴──────────────────────┘

Examples:
    >>> Ok(10).unwrap()
    10
    >>> Err(ValueError("bad")).is_err()
    True

Tags:
    result-pattern, error-handling, cashflow-core

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    Examples:
        >>> ok = Ok(42)
        >>> ok.is_ok()
        True
        >>> ok.unwrap()
        42
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an exception.

    Examples:
        >>> err = Err(ValueError("bad input"))
        >>> err.is_err()
        True
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Ok[T] | Err[T]


__all__ = [
    "Ok",
    "Err",
    "Result",
]
