# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Statistics engine exceptions.

Exception hierarchy:
    StatsError (base)
    ├── ScopeNotFound          - unknown employee/team (client-visible 404)
    ├── MalformedProjection    - stored projection failed to parse (recovered)
    ├── EventLogUnavailable    - event log query failed (retryable 503)
    └── StoreWriteFailed       - projection could not be persisted (logged)
"""

from typing import Optional


class StatsError(Exception):
    """Base exception for the statistics engine.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class ScopeNotFound(StatsError):
    """Raised when the requested employee or team does not exist."""

    def __init__(self, scope_kind: str, scope_id: str) -> None:
        super().__init__(f"{scope_kind.capitalize()} not found: {scope_id}")
        self.scope_kind = scope_kind
        self.scope_id = scope_id


class MalformedProjection(StatsError):
    """Raised when a stored projection cannot be parsed."""


class EventLogUnavailable(StatsError):
    """Raised when learning events cannot be listed."""


class StoreWriteFailed(StatsError):
    """Raised when a computed projection cannot be persisted."""
