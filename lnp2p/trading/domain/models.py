"""Domain entities for P2P trading.

Entities in DDD:
- Have identity (unique ID)
- Mutable lifecycle
- Mapped to database tables via SQLAlchemy

Status changes of an ``Order`` are never made by assigning ``order.status``
on a loaded instance: they go through ``OrderRepository.update_if`` so that
the database decides who wins a race.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from ...storage.database.base import Base, TimestampMixin
from .enums import OrderStatus, OrderType, TradeRole


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class User(TimestampMixin, Base):
    """A chat-platform user known to the system.

    Created lazily on first contact. ``banned`` and ``admin`` are managed by
    admin tooling outside this package; the guards only read them.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity on the chat platform; the unique constraint is what keeps two
    # simultaneous first contacts from producing two users.
    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)

    username: Mapped[str | None] = mapped_column(String(64))
    first_name: Mapped[str | None] = mapped_column(String(128))
    last_name: Mapped[str | None] = mapped_column(String(128))

    banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, external_id={self.external_id}, "
            f"banned={self.banned}, admin={self.admin})>"
        )

    def ban(self) -> None:
        self.banned = True

    def unban(self) -> None:
        self.banned = False

    def promote(self) -> None:
        """Grant admin rights."""
        self.admin = True


class Order(TimestampMixin, Base):
    """A buy or sell intent moving through the trade lifecycle."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("amount = 0 OR amount >= 100", name="amount_minimum"),
        CheckConstraint("fiat_amount >= 1", name="fiat_amount_minimum"),
        CheckConstraint(
            "seller_id IS NULL OR buyer_id IS NULL OR seller_id != buyer_id",
            name="distinct_parties",
        ),
        Index("ix_orders_seller_status", "seller_id", "status"),
        Index("ix_orders_buyer_status", "buyer_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    type: Mapped[OrderType] = mapped_column(
        SAEnum(OrderType, native_enum=False, length=8, values_callable=_enum_values),
        nullable=False,
    )
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )

    # Parties
    creator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    seller_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    buyer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    # Terms
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)  # sats, 0 = market
    fiat_amount: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    fiat_code: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_method: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Settlement
    buyer_invoice: Mapped[str | None] = mapped_column(Text)
    taken_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, type='{self.type}', status='{self.status}', "
            f"amount={self.amount}, fiat={self.fiat_amount} {self.fiat_code})>"
        )

    def is_creator(self, user_id: int) -> bool:
        return self.creator_id == user_id

    def party_id(self, role: TradeRole) -> int | None:
        """User id currently filling ``role``."""
        return self.seller_id if role is TradeRole.SELLER else self.buyer_id

    def role_of(self, user_id: int) -> TradeRole | None:
        """Role ``user_id`` plays in this order, if any."""
        if self.seller_id == user_id:
            return TradeRole.SELLER
        if self.buyer_id == user_id:
            return TradeRole.BUYER
        return None

    @property
    def has_buyer_invoice(self) -> bool:
        return bool(self.buyer_invoice)
