"""Order lifecycle transition table.

Every status change an order may undergo is one row of ``TRANSITIONS``. The
guards never compare status strings by hand: they look up the row for the
event and both the read-side check (``permits``) and the conditional write
(``OrderRepository.apply``) are derived from it.

    event       from                 actor must be       requires        to
    ---------   ------------------   -----------------   -------------   ---------
    take_sell   PENDING              not creator         type == sell    ACTIVE (+buyer)
    take_buy    PENDING              not creator         type == buy     ACTIVE (+seller)
    fiat_sent   ACTIVE               buyer               buyer_invoice   FIAT_SENT
    release     ACTIVE, FIAT_SENT    seller                              RELEASED
    dispute     ACTIVE               seller or buyer                     DISPUTE
    cancel      PENDING, ACTIVE      (system)                            CANCELLED
    expire      PENDING, ACTIVE      (system)                            EXPIRED
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lnp2p.exceptions import ValidationError

from .enums import OrderStatus, OrderType, TradeEvent, TradeRole

if TYPE_CHECKING:
    from .models import Order


@dataclass(frozen=True)
class Transition:
    """One edge of the order state graph."""

    event: TradeEvent
    sources: frozenset[OrderStatus]
    target: OrderStatus
    # Actor must currently fill one of these roles; empty for takes and system events
    actor_roles: frozenset[TradeRole] = frozenset()
    # Takes only: order type the command targets and the role the taker fills
    order_type: OrderType | None = None
    assigns: TradeRole | None = None
    # Order columns that must be non-empty before the transition
    requires: tuple[str, ...] = ()

    @property
    def is_take(self) -> bool:
        return self.assigns is not None

    @property
    def is_system(self) -> bool:
        return not self.actor_roles and not self.is_take

    def permits(self, order: Order, actor_id: int | None = None) -> bool:
        """Read-side check of this edge against a loaded order.

        The answer is only advisory: by the time the write happens another
        actor may have moved the order, which is why the write repeats every
        condition.
        """
        if order.status not in self.sources:
            return False
        if self.is_take:
            return (
                order.type == self.order_type
                and actor_id is not None
                and not order.is_creator(actor_id)
                and order.party_id(self.assigns) is None
            )
        if self.actor_roles and order.role_of(actor_id) not in self.actor_roles:
            return False
        return all(getattr(order, column) for column in self.requires)


_ACTIVE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.ACTIVE})

TRANSITIONS: dict[TradeEvent, Transition] = {
    TradeEvent.TAKE_SELL: Transition(
        event=TradeEvent.TAKE_SELL,
        sources=frozenset({OrderStatus.PENDING}),
        target=OrderStatus.ACTIVE,
        order_type=OrderType.SELL,
        assigns=TradeRole.BUYER,
    ),
    TradeEvent.TAKE_BUY: Transition(
        event=TradeEvent.TAKE_BUY,
        sources=frozenset({OrderStatus.PENDING}),
        target=OrderStatus.ACTIVE,
        order_type=OrderType.BUY,
        assigns=TradeRole.SELLER,
    ),
    TradeEvent.FIAT_SENT: Transition(
        event=TradeEvent.FIAT_SENT,
        sources=frozenset({OrderStatus.ACTIVE}),
        target=OrderStatus.FIAT_SENT,
        actor_roles=frozenset({TradeRole.BUYER}),
        requires=("buyer_invoice",),
    ),
    TradeEvent.RELEASE: Transition(
        event=TradeEvent.RELEASE,
        sources=frozenset({OrderStatus.ACTIVE, OrderStatus.FIAT_SENT}),
        target=OrderStatus.RELEASED,
        actor_roles=frozenset({TradeRole.SELLER}),
    ),
    TradeEvent.DISPUTE: Transition(
        event=TradeEvent.DISPUTE,
        sources=frozenset({OrderStatus.ACTIVE}),
        target=OrderStatus.DISPUTE,
        actor_roles=frozenset({TradeRole.SELLER, TradeRole.BUYER}),
    ),
    TradeEvent.CANCEL: Transition(
        event=TradeEvent.CANCEL,
        sources=_ACTIVE_STATES,
        target=OrderStatus.CANCELLED,
    ),
    TradeEvent.EXPIRE: Transition(
        event=TradeEvent.EXPIRE,
        sources=_ACTIVE_STATES,
        target=OrderStatus.EXPIRED,
    ),
}


def transition_for(event: TradeEvent) -> Transition:
    try:
        return TRANSITIONS[TradeEvent(event)]
    except (KeyError, ValueError) as e:
        raise ValidationError("Unknown trade event", field="event", value=event) from e


def _build_graph() -> dict[OrderStatus, frozenset[OrderStatus]]:
    graph: dict[OrderStatus, set[OrderStatus]] = defaultdict(set)
    for transition in TRANSITIONS.values():
        for source in transition.sources:
            graph[source].add(transition.target)
    return {status: frozenset(graph.get(status, ())) for status in OrderStatus}


# Status -> statuses reachable in one step
ORDER_ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = _build_graph()


def is_valid_transition(prev_status: OrderStatus, next_status: OrderStatus) -> bool:
    """Return True if some event moves an order from prev_status to next_status."""
    return next_status in ORDER_ALLOWED_TRANSITIONS.get(prev_status, frozenset())


def events_from(status: OrderStatus) -> list[TradeEvent]:
    """Events that may fire while an order is in ``status``."""
    return [t.event for t in TRANSITIONS.values() if status in t.sources]
