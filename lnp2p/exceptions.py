"""Exception hierarchy for lnp2p.

Domain outcomes (wrong status, self-take, bad amount, ...) are never raised:
they are returned as typed ``Rejection`` values from
``lnp2p.trading.domain.outcomes``. The exceptions below cover infrastructure
and programming faults: bad configuration, storage failures, and external
collaborators that misbehave.

Usage:
    from lnp2p.exceptions import ConfigurationError, InvoiceDecodeError

    try:
        decoded = decoder.decode(payment_request)
    except InvoiceDecodeError as e:
        logger.warning("invoice_decode_failed", error=str(e), context=e.context)
"""

from __future__ import annotations

from typing import Any


class LnP2PError(Exception):
    """Base exception for all lnp2p errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Format exception with context for logging."""
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Validation & Configuration Errors
# =============================================================================


class ValidationError(LnP2PError):
    """Raised when a value handed in by code (not by a user) is invalid.

    User input is reported through rejections; this is for callers that
    violate an API contract, e.g. asking the guard for an unknown event.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ConfigurationError(LnP2PError):
    """Raised when application configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Database & Persistence Errors
# =============================================================================


class DatabaseError(LnP2PError):
    """Base class for database-related errors."""


class DatabaseNotInitializedError(DatabaseError):
    """Raised when a session is requested before ``init_db()``."""


# =============================================================================
# External Integration Errors
# =============================================================================


class IntegrationError(LnP2PError):
    """Base class for external collaborator errors."""


class InvoiceDecodeError(IntegrationError):
    """Raised by an invoice decoder that cannot make sense of a payment request."""

    def __init__(
        self,
        message: str,
        *,
        decoder: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if decoder:
            context["decoder"] = decoder
        if status_code is not None:
            context["status_code"] = status_code
        kwargs["context"] = context
        super().__init__(message, **kwargs)
