"""Domain event system shared by all lnp2p modules.

Example:
    >>> from lnp2p.core.events import get_global_event_bus
    >>> from lnp2p.trading.domain.events import OrderReleased
    >>> get_global_event_bus().subscribe(OrderReleased, pay_buyer_invoice)
"""

from lnp2p.core.events.base import BaseEvent, EventBus, GlobalEventBus, get_global_event_bus

__all__ = [
    "BaseEvent",
    "EventBus",
    "GlobalEventBus",
    "get_global_event_bus",
]
