"""Domain value objects for P2P trading.

Value Objects in DDD:
- Immutable (frozen dataclasses)
- No identity (equality based on attributes)
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal


@dataclass(frozen=True)
class ActorIdentity:
    """Identity of the person behind an inbound chat event.

    Only ``external_id`` is trusted; display fields are copied once, when the
    user record is first created.
    """

    external_id: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    def __post_init__(self) -> None:
        if not str(self.external_id).strip():
            raise ValueError("external_id cannot be empty")


@dataclass(frozen=True)
class OrderArguments:
    """Raw positional arguments of a /buy or /sell command, still unvalidated."""

    amount: str
    fiat_amount: str
    fiat_code: str
    payment_method: str


@dataclass(frozen=True)
class OrderTerms:
    """Validated and normalized order terms."""

    amount: int  # Satoshis, 0 means market price
    fiat_amount: Decimal
    fiat_code: str  # Upper-case ISO-4217
    payment_method: str

    @property
    def is_market_order(self) -> bool:
        return self.amount == 0


@dataclass(frozen=True)
class DecodedInvoice:
    """What the invoice decoder tells us about a BOLT-11 payment request."""

    amount_sats: int | None  # None for "any amount" invoices
    expires_at: datetime
    is_expired: bool | None
    destination: str | None
    payment_hash: str | None

    def __post_init__(self) -> None:
        if self.expires_at.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware")

    @property
    def seconds_to_expiry(self) -> float:
        """Seconds until expiry (negative if expired)."""
        return (self.expires_at - datetime.now(UTC)).total_seconds()
