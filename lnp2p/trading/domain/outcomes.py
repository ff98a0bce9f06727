"""Typed outcomes returned by every trading operation.

An operation never raises for a business reason. It returns either
``Accepted(value)`` or a ``Rejection`` carrying a ``RejectReason`` plus the
parameters the notification sink needs to render it (``minimum=100``,
``expected=2``, ...).

Example:
    >>> outcome = guard.take_order(order_id, actor, OrderType.SELL)
    >>> if isinstance(outcome, Rejection):
    ...     sink.notify(actor, outcome)
    ... else:
    ...     announce(outcome.value)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar, Union

from .enums import RejectCategory, RejectReason

T = TypeVar("T")


@dataclass(frozen=True)
class Accepted(Generic[T]):
    """Successful outcome wrapping the produced value."""

    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Rejection:
    """Recoverable, typed refusal of a requested operation."""

    reason: RejectReason
    params: dict[str, Any] = field(default_factory=dict)
    ok: ClassVar[bool] = False

    @property
    def category(self) -> RejectCategory:
        return self.reason.category

    @property
    def retryable(self) -> bool:
        """Whether repeating the whole validate-then-transition sequence may succeed."""
        return self.reason.retryable

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason.value,
            "category": self.category.value,
            "retryable": self.retryable,
            "params": dict(self.params),
        }


Outcome = Union[Accepted[T], Rejection]


def reject(reason: RejectReason, **params: Any) -> Rejection:
    """Shorthand used throughout the guards."""
    return Rejection(reason=reason, params=params)
