"""Domain events for P2P trading.

Published after a transition has been committed, or when an actor's request
was rejected. Chat transport and admin notifiers subscribe to these.
"""

from dataclasses import dataclass
from typing import Any

from ...core.events.base import BaseEvent
from .enums import OrderStatus, RejectReason, TradeEvent


@dataclass(frozen=True)
class OrderCreated(BaseEvent):
    """A new PENDING order was stored."""

    order_id: str
    order_type: str
    creator_id: int
    amount: int
    fiat_code: str

    @property
    def context_data(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_type": self.order_type,
            "creator_id": self.creator_id,
            "amount": self.amount,
            "fiat_code": self.fiat_code,
        }


@dataclass(frozen=True)
class OrderTransitioned(BaseEvent):
    """Base for every committed status change."""

    order_id: str
    trade_event: TradeEvent
    to_status: OrderStatus
    actor_id: int | None

    @property
    def context_data(self) -> dict:
        return {
            "order_id": self.order_id,
            "trade_event": self.trade_event.value,
            "to_status": self.to_status.value,
            "actor_id": self.actor_id,
        }


@dataclass(frozen=True)
class OrderTaken(OrderTransitioned):
    """A counterparty took a PENDING order."""


@dataclass(frozen=True)
class OrderFiatSent(OrderTransitioned):
    """The buyer claims the fiat payment was sent."""


@dataclass(frozen=True)
class OrderReleased(OrderTransitioned):
    """The seller released escrow; the buyer invoice can now be paid."""


@dataclass(frozen=True)
class OrderDisputed(OrderTransitioned):
    """A party raised a dispute; admins take over."""


@dataclass(frozen=True)
class OrderClosed(OrderTransitioned):
    """The order was cancelled or expired by a system collaborator."""


@dataclass(frozen=True)
class TradeRejected(BaseEvent):
    """An actor's request was refused with a typed reason."""

    actor_id: int | str | None
    reason: RejectReason
    params: dict[str, Any]

    @property
    def context_data(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "reason": self.reason.value,
            "category": self.reason.category.value,
            "params": self.params,
        }


EVENT_FOR: dict[TradeEvent, type[OrderTransitioned]] = {
    TradeEvent.TAKE_SELL: OrderTaken,
    TradeEvent.TAKE_BUY: OrderTaken,
    TradeEvent.FIAT_SENT: OrderFiatSent,
    TradeEvent.RELEASE: OrderReleased,
    TradeEvent.DISPUTE: OrderDisputed,
    TradeEvent.CANCEL: OrderClosed,
    TradeEvent.EXPIRE: OrderClosed,
}
