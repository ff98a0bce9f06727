"""Tests for the order transition table.

Tests cover:
- Shape of the state graph (no skips, terminal states are sinks)
- Read-side ``Transition.permits`` checks per event
- Property-based tests (Hypothesis) over arbitrary status pairs
"""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lnp2p.exceptions import ValidationError
from lnp2p.trading.domain.enums import OrderStatus, OrderType, TradeEvent, TradeRole
from lnp2p.trading.domain.models import Order
from lnp2p.trading.domain.transitions import (
    ORDER_ALLOWED_TRANSITIONS,
    TRANSITIONS,
    events_from,
    is_valid_transition,
    transition_for,
)

pytestmark = pytest.mark.unit

TERMINAL = {OrderStatus.RELEASED, OrderStatus.CANCELLED, OrderStatus.EXPIRED}

# Every edge of the lifecycle graph, and nothing else
EXPECTED_EDGES = {
    (OrderStatus.PENDING, OrderStatus.ACTIVE),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.PENDING, OrderStatus.EXPIRED),
    (OrderStatus.ACTIVE, OrderStatus.FIAT_SENT),
    (OrderStatus.ACTIVE, OrderStatus.RELEASED),
    (OrderStatus.ACTIVE, OrderStatus.DISPUTE),
    (OrderStatus.ACTIVE, OrderStatus.CANCELLED),
    (OrderStatus.ACTIVE, OrderStatus.EXPIRED),
    (OrderStatus.FIAT_SENT, OrderStatus.RELEASED),
}


def _order(
    order_type: OrderType = OrderType.SELL,
    status: OrderStatus = OrderStatus.PENDING,
    creator_id: int = 1,
    seller_id: int | None = None,
    buyer_id: int | None = None,
    buyer_invoice: str | None = None,
) -> Order:
    """Transient order; ``permits`` never touches the database."""
    order = Order(
        type=order_type,
        status=status,
        creator_id=creator_id,
        amount=1000,
        fiat_amount=Decimal("10"),
        fiat_code="USD",
        payment_method="cash",
        buyer_invoice=buyer_invoice,
    )
    order.seller_id = seller_id
    order.buyer_id = buyer_id
    setattr(order, order_type.creator_role.column, creator_id)
    return order


# ============================================================================
# TABLE SHAPE
# ============================================================================


class TestTransitionGraph:
    """Test suite for the derived state graph."""

    def test_every_event_has_exactly_one_row(self) -> None:
        """Test that the table covers every trade event."""
        assert set(TRANSITIONS) == set(TradeEvent)
        assert all(t.event is event for event, t in TRANSITIONS.items())

    def test_graph_matches_lifecycle(self) -> None:
        """Test that the graph has exactly the lifecycle edges."""
        edges = {
            (source, target)
            for source, targets in ORDER_ALLOWED_TRANSITIONS.items()
            for target in targets
        }
        assert edges == EXPECTED_EDGES

    def test_terminal_states_are_sinks(self) -> None:
        """Test that no event leaves a terminal state."""
        for status in TERMINAL:
            assert status.is_terminal
            assert ORDER_ALLOWED_TRANSITIONS[status] == frozenset()
            assert events_from(status) == []

    def test_dispute_has_no_exit(self) -> None:
        """Test that a disputed order waits for admin tooling."""
        assert ORDER_ALLOWED_TRANSITIONS[OrderStatus.DISPUTE] == frozenset()

    def test_no_skipping_pending_to_released(self) -> None:
        """Test that PENDING cannot jump straight to RELEASED or FIAT_SENT."""
        assert not is_valid_transition(OrderStatus.PENDING, OrderStatus.RELEASED)
        assert not is_valid_transition(OrderStatus.PENDING, OrderStatus.FIAT_SENT)

    def test_system_events(self) -> None:
        """Test that only cancel and expire are system events."""
        system = {event for event, t in TRANSITIONS.items() if t.is_system}
        assert system == {TradeEvent.CANCEL, TradeEvent.EXPIRE}

    def test_take_rows_assign_the_missing_role(self) -> None:
        """Test that take rows assign the role opposite to the creator's."""
        assert TRANSITIONS[TradeEvent.TAKE_SELL].assigns is TradeRole.BUYER
        assert TRANSITIONS[TradeEvent.TAKE_BUY].assigns is TradeRole.SELLER
        for order_type in OrderType:
            take = TRANSITIONS[TradeEvent.take_for(order_type)]
            assert take.order_type is order_type
            assert take.assigns is order_type.taker_role

    def test_transition_for_unknown_event(self) -> None:
        """Test that an unknown event is a caller bug."""
        with pytest.raises(ValidationError):
            transition_for("teleport")

    def test_transition_for_accepts_values(self) -> None:
        """Test lookup by enum value."""
        assert transition_for("release") is TRANSITIONS[TradeEvent.RELEASE]

    @given(
        prev_status=st.sampled_from(list(OrderStatus)),
        next_status=st.sampled_from(list(OrderStatus)),
    )
    def test_valid_transition_matches_edges(
        self, prev_status: OrderStatus, next_status: OrderStatus
    ) -> None:
        """Property: is_valid_transition is exactly membership in the edge set."""
        assert is_valid_transition(prev_status, next_status) == (
            (prev_status, next_status) in EXPECTED_EDGES
        )

    @given(status=st.sampled_from(list(OrderStatus)))
    def test_no_self_loops(self, status: OrderStatus) -> None:
        """Property: no event leaves an order in the status it started from."""
        assert not is_valid_transition(status, status)


# ============================================================================
# READ-SIDE CHECKS
# ============================================================================


class TestPermits:
    """Test suite for Transition.permits."""

    def test_take_sell_by_stranger(self) -> None:
        """Test that anybody but the creator may take a sell order."""
        order = _order(OrderType.SELL, creator_id=1)
        assert TRANSITIONS[TradeEvent.TAKE_SELL].permits(order, actor_id=2)

    def test_take_by_creator_refused(self) -> None:
        """Test that the creator cannot be its own counterparty."""
        order = _order(OrderType.SELL, creator_id=1)
        assert not TRANSITIONS[TradeEvent.TAKE_SELL].permits(order, actor_id=1)

    def test_take_wrong_type_refused(self) -> None:
        """Test that take_buy does not apply to sell orders."""
        order = _order(OrderType.SELL, creator_id=1)
        assert not TRANSITIONS[TradeEvent.TAKE_BUY].permits(order, actor_id=2)

    def test_take_already_taken_refused(self) -> None:
        """Test that an order with both parties cannot be taken again."""
        order = _order(OrderType.SELL, status=OrderStatus.ACTIVE, creator_id=1, buyer_id=2)
        assert not TRANSITIONS[TradeEvent.TAKE_SELL].permits(order, actor_id=3)

    def test_fiat_sent_requires_invoice(self) -> None:
        """Test that fiat_sent needs the buyer invoice."""
        order = _order(OrderType.SELL, status=OrderStatus.ACTIVE, creator_id=1, buyer_id=2)
        fiat_sent = TRANSITIONS[TradeEvent.FIAT_SENT]
        assert not fiat_sent.permits(order, actor_id=2)

        order.buyer_invoice = "lnbc1..."
        assert fiat_sent.permits(order, actor_id=2)

    def test_fiat_sent_only_by_buyer(self) -> None:
        """Test that the seller cannot claim fiat was sent."""
        order = _order(
            OrderType.SELL,
            status=OrderStatus.ACTIVE,
            creator_id=1,
            buyer_id=2,
            buyer_invoice="lnbc1...",
        )
        assert not TRANSITIONS[TradeEvent.FIAT_SENT].permits(order, actor_id=1)

    @pytest.mark.parametrize("status", [OrderStatus.ACTIVE, OrderStatus.FIAT_SENT])
    def test_release_by_seller(self, status: OrderStatus) -> None:
        """Test release from both releasable states."""
        order = _order(OrderType.SELL, status=status, creator_id=1, buyer_id=2)
        release = TRANSITIONS[TradeEvent.RELEASE]
        assert release.permits(order, actor_id=1)
        assert not release.permits(order, actor_id=2)

    def test_dispute_by_either_party(self) -> None:
        """Test that both parties, and only they, may dispute."""
        order = _order(OrderType.BUY, status=OrderStatus.ACTIVE, creator_id=1, seller_id=2)
        dispute = TRANSITIONS[TradeEvent.DISPUTE]
        assert dispute.permits(order, actor_id=1)
        assert dispute.permits(order, actor_id=2)
        assert not dispute.permits(order, actor_id=3)

    def test_dispute_after_fiat_sent_refused(self) -> None:
        """Test that dispute is only possible while ACTIVE."""
        order = _order(OrderType.SELL, status=OrderStatus.FIAT_SENT, creator_id=1, buyer_id=2)
        assert not TRANSITIONS[TradeEvent.DISPUTE].permits(order, actor_id=2)

    @pytest.mark.parametrize("event", [TradeEvent.CANCEL, TradeEvent.EXPIRE])
    def test_system_events_ignore_actor(self, event: TradeEvent) -> None:
        """Test that cancel/expire only look at the status."""
        pending = _order(status=OrderStatus.PENDING)
        released = _order(status=OrderStatus.RELEASED, buyer_id=2)
        assert TRANSITIONS[event].permits(pending)
        assert not TRANSITIONS[event].permits(released)
