"""Order creation, taking and system closure.

All status changes are executed as one conditional ``UPDATE`` derived from
the transition table, so two actors racing for the same order can never
both win: the database applies the first write and the second one matches
zero rows.
"""

from lnp2p.core.events.base import EventBus
from lnp2p.exceptions import ValidationError
from lnp2p.trading.application.notifications import NotificationSink
from lnp2p.trading.domain.enums import OrderStatus, OrderType, RejectReason, TradeEvent, TradeRole
from lnp2p.trading.domain.events import OrderCreated
from lnp2p.trading.domain.models import Order, User
from lnp2p.trading.domain.outcomes import Accepted, Outcome, Rejection
from lnp2p.trading.domain.transitions import transition_for
from lnp2p.trading.infrastructure.repository import OrderRepository

from .base import TradeService, storage_guarded
from .validators import validate_order_terms


class OrderGuard(TradeService):
    """Decides and executes the PENDING-side transitions of an order.

    Args:
        orders: Order repository bound to the unit-of-work session
        sink: Where rejections are forwarded, if anywhere
        event_bus: Where committed transitions are broadcast, if anywhere
    """

    def __init__(
        self,
        orders: OrderRepository,
        sink: NotificationSink | None = None,
        event_bus: EventBus | None = None,
    ):
        super().__init__(sink=sink, event_bus=event_bus)
        self.orders = orders

    def _recover(self) -> None:
        self.orders.session.rollback()

    @storage_guarded(actor_arg="seller")
    def can_create_or_take(self, seller: User) -> Outcome[User]:
        """A seller with an order awaiting release may not open another one."""
        if self.orders.seller_has_status(seller.id, OrderStatus.FIAT_SENT):
            return self._reject(seller, RejectReason.SELLER_HAS_OPEN_FIAT_SENT)
        return Accepted(seller)

    @storage_guarded(actor_arg="creator")
    def create_order(self, creator: User, direction: OrderType, text: str) -> Outcome[Order]:
        """Validate a /buy or /sell command and store the resulting PENDING order.

        The creator fills the role implied by ``direction``; a sell creator is
        the seller and therefore subject to the open fiat-sent cap, which the
        insert re-checks in the same statement.
        """
        direction = OrderType(direction)
        terms = validate_order_terms(direction, text)
        if isinstance(terms, Rejection):
            return self._forward(creator, terms)

        if direction.creator_role is TradeRole.SELLER:
            gate = self.can_create_or_take(creator)
            if isinstance(gate, Rejection):
                return gate

        order = Order(
            type=direction,
            status=OrderStatus.PENDING,
            creator_id=creator.id,
            amount=terms.value.amount,
            fiat_amount=terms.value.fiat_amount,
            fiat_code=terms.value.fiat_code,
            payment_method=terms.value.payment_method,
        )
        setattr(order, direction.creator_role.column, creator.id)

        criteria = []
        if direction.creator_role is TradeRole.SELLER:
            criteria.append(self.orders.seller_free_of(creator.id, OrderStatus.FIAT_SENT))
        stored = self.orders.add_if(order, *criteria)
        if stored is None:
            # An order of this seller reached FIAT_SENT after the check above
            return self._reject(creator, RejectReason.SELLER_HAS_OPEN_FIAT_SENT)
        order = stored

        self.logger.info(
            "order_created",
            order_id=order.id,
            order_type=direction.value,
            creator_id=creator.id,
            amount=order.amount,
            fiat_code=order.fiat_code,
        )
        self._publish(
            OrderCreated(
                order_id=order.id,
                order_type=direction.value,
                creator_id=creator.id,
                amount=order.amount,
                fiat_code=order.fiat_code,
            )
        )
        return Accepted(order)

    @storage_guarded(actor_arg="actor")
    def take_order(self, order_id: str, actor: User, expected_type: OrderType) -> Outcome[Order]:
        """Take a PENDING order as its counterparty.

        Checks run in a fixed order: the order exists, the actor is not its
        creator, it has the type the command targets, and it is still
        PENDING. Taking a buy order makes the actor the seller, so the
        fiat-sent cap applies as well. The conditional write then repeats
        every condition, the cap included; if it matches nothing, someone
        else took the order first and the result is ``ORDER_NOT_PENDING``,
        unless the cap is what failed.
        """
        expected_type = OrderType(expected_type)
        order = self.orders.get(order_id)
        if order is None:
            return self._reject(actor, RejectReason.ORDER_NOT_FOUND, order_id=order_id)
        if order.is_creator(actor.id):
            return self._reject(actor, RejectReason.SELF_TAKE_FORBIDDEN, order_id=order_id)
        if order.type != expected_type:
            return self._reject(
                actor,
                RejectReason.WRONG_ORDER_TYPE,
                order_id=order_id,
                expected=expected_type.value,
                actual=order.type.value,
            )
        if order.status != OrderStatus.PENDING:
            return self._reject(actor, RejectReason.ORDER_NOT_PENDING, order_id=order_id)

        transition = transition_for(TradeEvent.take_for(expected_type))
        if transition.assigns is TradeRole.SELLER:
            gate = self.can_create_or_take(actor)
            if isinstance(gate, Rejection):
                return gate

        if not self.orders.apply(order_id, transition, actor.id):
            self._lost(order_id, transition, actor.id)
            if transition.assigns is TradeRole.SELLER and self.orders.seller_has_status(
                actor.id, OrderStatus.FIAT_SENT
            ):
                return self._reject(actor, RejectReason.SELLER_HAS_OPEN_FIAT_SENT)
            return self._reject(actor, RejectReason.ORDER_NOT_PENDING, order_id=order_id)

        self._committed(order_id, transition, actor.id)
        return Accepted(self.orders.get(order_id))

    @storage_guarded()
    def close_order(self, order_id: str, event: TradeEvent) -> Outcome[Order]:
        """Cancel or expire an order on behalf of a timer or admin tool.

        Raises:
            ValidationError: ``event`` is not a system event
        """
        transition = transition_for(event)
        if not transition.is_system:
            raise ValidationError(
                "Only system events can close an order", field="event", value=str(event)
            )

        if self.orders.get(order_id) is None:
            return self._reject(None, RejectReason.ORDER_NOT_FOUND, order_id=order_id)

        if not self.orders.apply(order_id, transition, None):
            self._lost(order_id, transition, None)
            return self._reject(None, RejectReason.ORDER_NOT_CLOSABLE, order_id=order_id)

        self._committed(order_id, transition, None)
        return Accepted(self.orders.get(order_id))
