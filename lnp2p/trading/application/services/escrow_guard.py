"""Post-take lifecycle: buyer invoice, fiat sent, release and dispute.

Resolvers answer "which order does this command refer to" for an actor and
reject with ``NO_ACTIVE_ORDER`` when the answer is none or ambiguous. The
transition methods resolve first and then write conditionally; a write that
matches nothing means another writer moved the order in between.
"""

from datetime import timedelta

from lnp2p.core.events.base import EventBus
from lnp2p.exceptions import ConfigurationError
from lnp2p.trading.application.notifications import NotificationSink
from lnp2p.trading.domain.enums import OrderStatus, RejectReason, TradeEvent
from lnp2p.trading.domain.models import Order, User
from lnp2p.trading.domain.outcomes import Accepted, Outcome, Rejection
from lnp2p.trading.domain.transitions import transition_for
from lnp2p.trading.infrastructure.invoice_decoder import InvoiceDecoder
from lnp2p.trading.infrastructure.repository import OrderRepository
from lnp2p.utils.config import get_settings

from .base import TradeService, storage_guarded
from .validators import validate_invoice


class EscrowGuard(TradeService):
    """Gates and executes the transitions that follow a take.

    Args:
        orders: Order repository bound to the unit-of-work session
        decoder: Invoice decoder used when a buyer attaches an invoice
        window: Minimum remaining validity of a buyer invoice; defaults to
            ``Settings.invoice_expiration_window``
        sink: Where rejections are forwarded, if anywhere
        event_bus: Where committed transitions are broadcast, if anywhere
    """

    def __init__(
        self,
        orders: OrderRepository,
        decoder: InvoiceDecoder | None = None,
        window: timedelta | None = None,
        sink: NotificationSink | None = None,
        event_bus: EventBus | None = None,
    ):
        super().__init__(sink=sink, event_bus=event_bus)
        self.orders = orders
        self.decoder = decoder
        self.window = window if window is not None else get_settings().invoice_expiration_window

    def _recover(self) -> None:
        self.orders.session.rollback()

    def _single(self, actor: User, found: list[Order]) -> Outcome[Order]:
        if len(found) != 1:
            return self._reject(actor, RejectReason.NO_ACTIVE_ORDER, matches=len(found))
        return Accepted(found[0])

    # ------------------------------------------------------------------
    # Resolvers
    # ------------------------------------------------------------------

    @storage_guarded()
    def resolve_releasable(self, actor: User, order_id: str | None = None) -> Outcome[Order]:
        """The one ACTIVE or FIAT_SENT order the actor is selling."""
        found = self.orders.find_for_seller(
            actor.id,
            (OrderStatus.ACTIVE, OrderStatus.FIAT_SENT),
            order_id=order_id,
            limit=2,
        )
        return self._single(actor, found)

    @storage_guarded()
    def resolve_disputable(self, actor: User, order_id: str) -> Outcome[Order]:
        """ACTIVE order ``order_id`` in which the actor is seller or buyer."""
        order = self.orders.find_for_party(actor.id, (OrderStatus.ACTIVE,), order_id)
        if order is None:
            return self._reject(actor, RejectReason.NO_ACTIVE_ORDER, order_id=order_id)
        return Accepted(order)

    @storage_guarded()
    def resolve_fiat_sent(self, actor: User, order_id: str | None = None) -> Outcome[Order]:
        """The one ACTIVE order the actor is buying, which must carry an invoice."""
        found = self.orders.find_for_buyer(
            actor.id, (OrderStatus.ACTIVE,), order_id=order_id, limit=2
        )
        resolved = self._single(actor, found)
        if isinstance(resolved, Rejection):
            return resolved
        if not resolved.value.has_buyer_invoice:
            return self._reject(actor, RejectReason.MISSING_INVOICE, order_id=resolved.value.id)
        return resolved

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @storage_guarded()
    def attach_buyer_invoice(
        self, actor: User, order_id: str, payment_request: str
    ) -> Outcome[Order]:
        """Store the buyer's Lightning invoice on an ACTIVE order.

        The invoice is checked with ``validate_invoice`` against the
        configured window; the payment request itself is never logged.

        Raises:
            ConfigurationError: the guard was built without a decoder
        """
        if self.decoder is None:
            raise ConfigurationError(
                "No invoice decoder configured", setting="decoder", expected="InvoiceDecoder"
            )

        found = self.orders.find_for_buyer(
            actor.id, (OrderStatus.ACTIVE,), order_id=order_id, limit=1
        )
        if not found:
            return self._reject(actor, RejectReason.NO_ACTIVE_ORDER, order_id=order_id)

        checked = validate_invoice(payment_request, self.window, self.decoder)
        if isinstance(checked, Rejection):
            return self._forward(actor, checked)

        attached = self.orders.update_if(
            order_id,
            (OrderStatus.ACTIVE,),
            {"buyer_invoice": payment_request},
            Order.buyer_id == actor.id,
        )
        if not attached:
            self.logger.info("buyer_invoice_attach_lost", order_id=order_id, actor_id=actor.id)
            return self._reject(actor, RejectReason.ORDER_STATUS_CHANGED, order_id=order_id)

        self.logger.info(
            "buyer_invoice_attached",
            order_id=order_id,
            actor_id=actor.id,
            amount_sats=checked.value.amount_sats,
            expires_at=checked.value.expires_at.isoformat(),
        )
        return Accepted(self.orders.get(order_id))

    def mark_fiat_sent(self, actor: User, order_id: str | None = None) -> Outcome[Order]:
        """Buyer claims the fiat payment went out."""
        return self._run(TradeEvent.FIAT_SENT, actor, self.resolve_fiat_sent(actor, order_id))

    def release(self, actor: User, order_id: str | None = None) -> Outcome[Order]:
        """Seller releases escrow."""
        return self._run(TradeEvent.RELEASE, actor, self.resolve_releasable(actor, order_id))

    def dispute(self, actor: User, order_id: str) -> Outcome[Order]:
        """Either party hands the trade over to the admins."""
        return self._run(TradeEvent.DISPUTE, actor, self.resolve_disputable(actor, order_id))

    @storage_guarded()
    def _run(self, event: TradeEvent, actor: User, resolved: Outcome[Order]) -> Outcome[Order]:
        if isinstance(resolved, Rejection):
            return resolved

        order_id = resolved.value.id
        transition = transition_for(event)
        if not self.orders.apply(order_id, transition, actor.id):
            self._lost(order_id, transition, actor.id)
            return self._reject(actor, RejectReason.ORDER_STATUS_CHANGED, order_id=order_id)

        self._committed(order_id, transition, actor.id)
        return Accepted(self.orders.get(order_id))
