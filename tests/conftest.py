"""
Pytest configuration and global fixtures.

This module provides shared fixtures used across all tests: SQLite engines
and sessions, user/order factories, a scripted invoice decoder and a sink
that records rejections.
"""

from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from lnp2p.core.events.base import GlobalEventBus
from lnp2p.exceptions import InvoiceDecodeError
from lnp2p.storage.database.base import Base
from lnp2p.trading.domain.enums import OrderStatus, OrderType
from lnp2p.trading.domain.models import Order, User
from lnp2p.trading.domain.outcomes import Rejection
from lnp2p.trading.domain.value_objects import DecodedInvoice
from lnp2p.trading.infrastructure.repository import OrderRepository, UserRepository
from lnp2p.utils.config import get_settings

VALID_INVOICE = "lnbc10u1pvalidinvoice"


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep LNP2P_* variables from the host out of the cached settings."""
    for name in ("LNP2P_DATABASE_URL", "LNP2P_INVOICE_EXPIRATION_WINDOW", "LNP2P_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="function")
def db_engine() -> Generator[Engine, None, None]:
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """
    Create a database session for testing.

    Each test gets a fresh session with automatic rollback.
    """
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture(scope="function")
def file_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """File-backed SQLite engine shared by several threads.

    In-memory databases are per-connection, so concurrency tests need a file.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'trades.db'}",
        echo=False,
        connect_args={"timeout": 15, "check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def users(db_session: Session) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def orders(db_session: Session) -> OrderRepository:
    return OrderRepository(db_session)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating persisted users: ``make_user("alice", admin=True)``."""

    def _make(external_id: str, *, banned: bool = False, admin: bool = False) -> User:
        user = User(
            external_id=external_id,
            username=external_id,
            first_name=external_id.title(),
            banned=banned,
            admin=admin,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


def build_order(
    creator: User,
    order_type: OrderType = OrderType.SELL,
    *,
    status: OrderStatus = OrderStatus.PENDING,
    counterparty: User | None = None,
    buyer_invoice: str | None = None,
    amount: int = 10_000,
    fiat_amount: Decimal = Decimal("25.00"),
    fiat_code: str = "EUR",
    payment_method: str = "SEPA",
) -> Order:
    """Order with the creator in the role implied by its type."""
    order = Order(
        type=order_type,
        status=status,
        creator_id=creator.id,
        amount=amount,
        fiat_amount=fiat_amount,
        fiat_code=fiat_code,
        payment_method=payment_method,
        buyer_invoice=buyer_invoice,
    )
    setattr(order, order_type.creator_role.column, creator.id)
    if counterparty is not None:
        setattr(order, order_type.taker_role.column, counterparty.id)
    return order


@pytest.fixture
def make_order(db_session: Session) -> Callable[..., Order]:
    """Factory creating persisted orders, see ``build_order`` for options."""

    def _make(creator: User, order_type: OrderType = OrderType.SELL, **kwargs: Any) -> Order:
        order = build_order(creator, order_type, **kwargs)
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make


# ============================================================================
# COLLABORATOR FAKES
# ============================================================================


def make_invoice(
    *,
    amount_sats: int | None = 10_000,
    expires_at: datetime | None = None,
    is_expired: bool | None = False,
    destination: str | None = "03e7156ae33b0a208d0744199163177e909e80176e55d97a2f221ede0f934dd9ad",
    payment_hash: str | None = "a" * 64,
) -> DecodedInvoice:
    return DecodedInvoice(
        amount_sats=amount_sats,
        expires_at=expires_at or datetime.now(UTC) + timedelta(hours=24),
        is_expired=is_expired,
        destination=destination,
        payment_hash=payment_hash,
    )


class FakeInvoiceDecoder:
    """Decoder returning scripted results per payment request."""

    def __init__(self, invoices: dict[str, DecodedInvoice | Exception] | None = None):
        self.invoices: dict[str, DecodedInvoice | Exception] = dict(invoices or {})
        self.calls: list[str] = []

    def decode(self, payment_request: str) -> DecodedInvoice:
        self.calls.append(payment_request)
        result = self.invoices.get(payment_request)
        if result is None:
            raise InvoiceDecodeError("Unknown payment request", decoder="fake")
        if isinstance(result, Exception):
            raise result
        return result


class RecordingSink:
    """Notification sink remembering everything it was told."""

    def __init__(self) -> None:
        self.notified: list[tuple[Any, Rejection]] = []

    def notify(self, actor: Any, outcome: Rejection) -> None:
        self.notified.append((actor, outcome))

    @property
    def reasons(self) -> list:
        return [outcome.reason for _, outcome in self.notified]


@pytest.fixture
def decoder() -> FakeInvoiceDecoder:
    return FakeInvoiceDecoder({VALID_INVOICE: make_invoice()})


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def event_bus() -> GlobalEventBus:
    """Private bus per test so handlers never leak between tests."""
    return GlobalEventBus()


@pytest.fixture
def decoded_invoice() -> Callable[..., DecodedInvoice]:
    """Factory for ``DecodedInvoice`` values, valid unless told otherwise."""
    return make_invoice


@pytest.fixture
def valid_invoice() -> str:
    """Payment request the ``decoder`` fixture accepts."""
    return VALID_INVOICE
