"""Shared plumbing for the trading services."""

import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from lnp2p.core.events.base import BaseEvent, EventBus
from lnp2p.trading.application.notifications import NotificationSink, report
from lnp2p.trading.domain.enums import RejectReason
from lnp2p.trading.domain.events import EVENT_FOR
from lnp2p.trading.domain.outcomes import Rejection, reject
from lnp2p.trading.domain.transitions import Transition
from lnp2p.utils.logging import get_logger, log_order_transition

F = TypeVar("F", bound=Callable[..., Any])


class TradeService:
    """Base class giving services a sink, an optional event bus and a logger."""

    def __init__(
        self,
        sink: NotificationSink | None = None,
        event_bus: EventBus | None = None,
    ):
        self.sink = sink
        self.event_bus = event_bus
        self.logger = get_logger(type(self).__module__)

    def _reject(self, actor: Any, reason: RejectReason, **params: Any) -> Rejection:
        return report(self.sink, self.logger, actor, reject(reason, **params))

    def _forward(self, actor: Any, rejection: Rejection) -> Rejection:
        """Report a rejection produced by a pure validator."""
        return report(self.sink, self.logger, actor, rejection)

    def _publish(self, event: BaseEvent) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)

    def _committed(self, order_id: str, transition: Transition, actor_id: int | None) -> None:
        """Audit-log a won transition and broadcast its domain event."""
        log_order_transition(
            self.logger,
            order_id=order_id,
            event=transition.event.value,
            from_statuses=sorted(status.value for status in transition.sources),
            to_status=transition.target.value,
            actor_id=actor_id,
        )
        self._publish(
            EVENT_FOR[transition.event](
                order_id=order_id,
                trade_event=transition.event,
                to_status=transition.target,
                actor_id=actor_id,
            )
        )

    def _lost(self, order_id: str, transition: Transition, actor_id: int | None) -> None:
        self.logger.info(
            "order_transition_lost",
            order_id=order_id,
            trade_event=transition.event.value,
            actor_id=actor_id,
        )

    def _recover(self) -> None:
        """Reset session state after a storage fault."""


def storage_guarded(actor_arg: str = "actor") -> Callable[[F], F]:
    """Turn a storage fault inside a service method into ``STORAGE_UNAVAILABLE``.

    Repositories roll back before re-raising, so nothing half-applied is
    left behind; the caller may retry the whole operation.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: TradeService, *args: Any, **kwargs: Any) -> Any:
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                actor = inspect.signature(func).bind_partial(self, *args, **kwargs).arguments.get(
                    actor_arg
                )
                self._recover()
                self.logger.error(
                    "trade_storage_fault",
                    operation=func.__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return self._reject(actor, RejectReason.STORAGE_UNAVAILABLE, retryable=True)

        return wrapper  # type: ignore[return-value]

    return decorator
