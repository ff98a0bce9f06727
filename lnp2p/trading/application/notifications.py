"""Notification sink contract.

The guards never write user-facing text. When they refuse a request they hand
``(actor, rejection)`` to a sink; the chat layer renders it in the user's
language.
"""

from typing import Any, Protocol

from lnp2p.core.events.base import EventBus, get_global_event_bus
from lnp2p.trading.domain.events import TradeRejected
from lnp2p.trading.domain.outcomes import Rejection


class NotificationSink(Protocol):
    """Receives typed outcomes addressed to an actor."""

    def notify(self, actor: Any, outcome: Rejection) -> None: ...


class NullNotificationSink:
    """Drops everything; callers inspect the returned outcomes themselves."""

    def notify(self, actor: Any, outcome: Rejection) -> None:
        return None


class EventBusNotificationSink:
    """Publishes every rejection as a ``TradeRejected`` event."""

    def __init__(self, event_bus: EventBus | None = None):
        self.event_bus = event_bus or get_global_event_bus()

    def notify(self, actor: Any, outcome: Rejection) -> None:
        self.event_bus.publish(
            TradeRejected(
                actor_id=_actor_key(actor),
                reason=outcome.reason,
                params=dict(outcome.params),
            )
        )


def _actor_key(actor: Any) -> int | str | None:
    """Internal id for users, external id for identities not yet resolved."""
    if actor is None:
        return None
    user_id = getattr(actor, "id", None)
    if user_id is not None:
        return user_id
    return getattr(actor, "external_id", None)


def report(sink: NotificationSink | None, logger, actor: Any, rejection: Rejection) -> Rejection:
    """Log a rejection, forward it to ``sink`` and hand it back to the caller."""
    logger.info(
        "trade_request_rejected",
        actor_id=_actor_key(actor),
        reason=rejection.reason.value,
        category=rejection.category.value,
        **{f"param_{k}": v for k, v in rejection.params.items()},
    )
    if sink is not None:
        sink.notify(actor, rejection)
    return rejection
