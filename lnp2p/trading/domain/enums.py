"""Domain enums for P2P trading."""

from enum import Enum


class OrderType(str, Enum):
    """Direction of an order, seen from its creator."""

    BUY = "buy"  # Creator buys sats, counterparty sells
    SELL = "sell"  # Creator sells sats, counterparty buys

    def __str__(self) -> str:
        return self.value

    @property
    def creator_role(self) -> "TradeRole":
        return TradeRole.SELLER if self is OrderType.SELL else TradeRole.BUYER

    @property
    def taker_role(self) -> "TradeRole":
        return TradeRole.BUYER if self is OrderType.SELL else TradeRole.SELLER


class TradeRole(str, Enum):
    """Side an actor plays in a trade."""

    BUYER = "buyer"
    SELLER = "seller"

    def __str__(self) -> str:
        return self.value

    @property
    def column(self) -> str:
        """Order column holding this role's user id."""
        return f"{self.value}_id"


class OrderStatus(str, Enum):
    """Order status.

    Lifecycle:
        PENDING → ACTIVE (taken)
        ACTIVE → FIAT_SENT (buyer claims fiat payment)
        ACTIVE | FIAT_SENT → RELEASED (seller releases escrow)
        ACTIVE → DISPUTE (either party)
        PENDING | ACTIVE → CANCELLED | EXPIRED (timers, admins)
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FIAT_SENT = "FIAT_SENT"
    DISPUTE = "DISPUTE"
    RELEASED = "RELEASED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.RELEASED, OrderStatus.CANCELLED, OrderStatus.EXPIRED)


class TradeEvent(str, Enum):
    """Events that may move an order to another status."""

    TAKE_SELL = "take_sell"
    TAKE_BUY = "take_buy"
    FIAT_SENT = "fiat_sent"
    RELEASE = "release"
    DISPUTE = "dispute"
    CANCEL = "cancel"
    EXPIRE = "expire"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def take_for(cls, order_type: OrderType) -> "TradeEvent":
        return cls.TAKE_SELL if order_type is OrderType.SELL else cls.TAKE_BUY


class RejectCategory(str, Enum):
    """Error taxonomy for rejections."""

    INPUT = "input"  # Malformed or out-of-range user input
    PRECONDITION = "precondition"  # Wrong status/role/rights, lost races
    NOT_FOUND = "not_found"  # No matching order or user
    EXTERNAL = "external"  # Decoder or storage trouble, safe to retry

    def __str__(self) -> str:
        return self.value


class RejectReason(str, Enum):
    """Typed reasons handed to the notification sink for rendering."""

    # Input shape
    MALFORMED_ARGS = "malformed_args"
    ARG_COUNT_MISMATCH = "arg_count_mismatch"
    NOT_INTEGER = "not_integer"
    NOT_NUMBER = "not_number"
    BELOW_MINIMUM = "below_minimum"
    ABOVE_MAXIMUM = "above_maximum"
    INVALID_CURRENCY = "invalid_currency"
    INVALID_ORDER_ID = "invalid_order_id"
    EXPIRATION_TOO_SOON = "expiration_too_soon"
    ALREADY_EXPIRED = "already_expired"
    MISSING_DESTINATION = "missing_destination"
    MISSING_PAYMENT_HASH = "missing_payment_hash"

    # Preconditions
    USER_BANNED = "user_banned"
    NOT_ADMIN = "not_admin"
    SELF_TAKE_FORBIDDEN = "self_take_forbidden"
    WRONG_ORDER_TYPE = "wrong_order_type"
    ORDER_NOT_PENDING = "order_not_pending"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_NOT_CLOSABLE = "order_not_closable"
    MISSING_INVOICE = "missing_invoice"
    SELLER_HAS_OPEN_FIAT_SENT = "seller_has_open_fiat_sent"

    # Not found
    UNKNOWN_USER = "unknown_user"
    ORDER_NOT_FOUND = "order_not_found"
    NO_ACTIVE_ORDER = "no_active_order"

    # External
    UNPARSEABLE_INVOICE = "unparseable_invoice"
    STORAGE_UNAVAILABLE = "storage_unavailable"

    def __str__(self) -> str:
        return self.value

    @property
    def category(self) -> RejectCategory:
        return _CATEGORIES.get(self, RejectCategory.INPUT)

    @property
    def retryable(self) -> bool:
        return self is RejectReason.STORAGE_UNAVAILABLE


_CATEGORIES: dict[RejectReason, RejectCategory] = {
    RejectReason.USER_BANNED: RejectCategory.PRECONDITION,
    RejectReason.NOT_ADMIN: RejectCategory.PRECONDITION,
    RejectReason.SELF_TAKE_FORBIDDEN: RejectCategory.PRECONDITION,
    RejectReason.WRONG_ORDER_TYPE: RejectCategory.PRECONDITION,
    RejectReason.ORDER_NOT_PENDING: RejectCategory.PRECONDITION,
    RejectReason.ORDER_STATUS_CHANGED: RejectCategory.PRECONDITION,
    RejectReason.ORDER_NOT_CLOSABLE: RejectCategory.PRECONDITION,
    RejectReason.MISSING_INVOICE: RejectCategory.PRECONDITION,
    RejectReason.SELLER_HAS_OPEN_FIAT_SENT: RejectCategory.PRECONDITION,
    RejectReason.UNKNOWN_USER: RejectCategory.NOT_FOUND,
    RejectReason.ORDER_NOT_FOUND: RejectCategory.NOT_FOUND,
    RejectReason.NO_ACTIVE_ORDER: RejectCategory.NOT_FOUND,
    RejectReason.UNPARSEABLE_INVOICE: RejectCategory.EXTERNAL,
    RejectReason.STORAGE_UNAVAILABLE: RejectCategory.EXTERNAL,
}
