"""
Error types for PharmaLedger domain operations.

This module defines the exceptions raised by SupplyChainLedger:
- LedgerError: Base exception
- InvalidInputError: Missing or empty required field, zero quantity,
  reference to a missing pharmaceutical
- NotFoundError: Lookup by id failed, or a filtered scan matched nothing
- UnauthorizedError: Actor lacks the required role

Storage failures live in pharmaledger.store and are not LedgerErrors.

Invariants:
    - All domain errors inherit from LedgerError
    - Every error carries a stable code for programmatic handling
    - Messages describe which precondition failed
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    code = "LEDGER_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        result: dict[str, Any] = {"error": self.message, "error_code": self.code}
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(LedgerError):
    """Payload validation failed.

    Raised when:
    - A required string field is empty
    - A quantity or timestamp is zero
    - A referenced pharmaceutical does not exist
    """

    code = "INVALID_INPUT"


class NotFoundError(LedgerError):
    """Requested entity or result set does not exist."""

    code = "NOT_FOUND"


class UnauthorizedError(LedgerError):
    """Actor does not hold the role required for the operation."""

    code = "UNAUTHORIZED"
