"""Repository implementations for trading entities.

Provides data access abstraction following the Repository pattern. Order
status changes go exclusively through ``OrderRepository.update_if`` /
``OrderRepository.apply``: a single ``UPDATE ... WHERE status IN (...)``
whose affected row count tells the caller whether it won.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import ColumnElement, and_, exists, insert, literal, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from lnp2p.storage.database.base import get_session, utcnow
from lnp2p.trading.domain.enums import OrderStatus, TradeRole
from lnp2p.trading.domain.models import Order, User
from lnp2p.trading.domain.transitions import Transition
from lnp2p.trading.domain.value_objects import ActorIdentity
from lnp2p.utils.logging import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for User entities."""

    def __init__(self, session: Session | None = None):
        self.session = session or get_session()

    def get(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def find_by_external_id(self, external_id: str) -> User | None:
        """Find user by chat-platform identity."""
        stmt = (
            select(User)
            .where(User.external_id == str(external_id))
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, identity: ActorIdentity) -> User:
        """Insert a user with default flags.

        Raises:
            IntegrityError: another writer inserted the same external_id
                first. The session is rolled back before re-raising.
        """
        user = User(
            external_id=str(identity.external_id),
            username=identity.username,
            first_name=identity.first_name,
            last_name=identity.last_name,
            banned=False,
            admin=False,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        return user

    def save(self, user: User) -> User:
        """Save or update a user."""
        self.session.add(user)
        self.session.commit()
        return user


class OrderRepository:
    """Repository for Order entities."""

    def __init__(self, session: Session | None = None):
        self.session = session or get_session()

    def get(self, order_id: str) -> Order | None:
        """Fresh read of one order, bypassing stale identity-map state."""
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def add(self, order: Order) -> Order:
        """Persist a new order."""
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def add_if(self, order: Order, *criteria: ColumnElement[bool]) -> Order | None:
        """Persist a new order only if every criterion holds at insert time.

        The criteria are evaluated by the database inside the write itself,
        as ``INSERT INTO orders (...) SELECT ... WHERE <criteria>``.

        Returns:
            The stored order, or None if a criterion did not hold.

        Raises:
            SQLAlchemyError: storage fault; the session is rolled back first.
        """
        if not criteria:
            return self.add(order)

        now = utcnow()
        order.id = order.id or str(uuid4())
        order.status = order.status or OrderStatus.PENDING
        order.created_at = now
        order.updated_at = now

        columns = [c for c in Order.__table__.columns if getattr(order, c.key) is not None]
        row = select(*(literal(getattr(order, c.key), c.type) for c in columns)).where(*criteria)
        stmt = insert(Order).from_select(columns, row)
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

        stored = result.rowcount == 1
        logger.debug("order_conditional_insert", order_id=order.id, applied=stored)
        return self.get(order.id) if stored else None

    def find(self, *criteria: ColumnElement[bool], limit: int | None = None) -> list[Order]:
        """Orders matching all ``criteria``, oldest first."""
        stmt = (
            select(Order)
            .where(*criteria)
            .order_by(Order.created_at, Order.id)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def find_for_seller(
        self,
        seller_id: int,
        statuses: Iterable[OrderStatus],
        order_id: str | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        criteria = [Order.seller_id == seller_id, Order.status.in_(list(statuses))]
        if order_id is not None:
            criteria.append(Order.id == order_id)
        return self.find(*criteria, limit=limit)

    def find_for_buyer(
        self,
        buyer_id: int,
        statuses: Iterable[OrderStatus],
        order_id: str | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        criteria = [Order.buyer_id == buyer_id, Order.status.in_(list(statuses))]
        if order_id is not None:
            criteria.append(Order.id == order_id)
        return self.find(*criteria, limit=limit)

    def find_for_party(
        self,
        user_id: int,
        statuses: Iterable[OrderStatus],
        order_id: str,
    ) -> Order | None:
        """Order ``order_id`` in one of ``statuses`` where the user is seller or buyer."""
        found = self.find(
            Order.id == order_id,
            Order.status.in_(list(statuses)),
            or_(Order.seller_id == user_id, Order.buyer_id == user_id),
            limit=1,
        )
        return found[0] if found else None

    def seller_has_status(self, seller_id: int, status: OrderStatus) -> bool:
        stmt = select(exists().where(Order.seller_id == seller_id, Order.status == status))
        return bool(self.session.execute(stmt).scalar())

    @staticmethod
    def seller_free_of(seller_id: int, status: OrderStatus) -> ColumnElement[bool]:
        """Write criterion: ``seller_id`` sells no order currently in ``status``."""
        other = aliased(Order)
        return ~exists().where(other.seller_id == seller_id, other.status == status)

    def update_if(
        self,
        order_id: str,
        expected_statuses: Iterable[OrderStatus],
        values: dict[str, Any],
        *criteria: ColumnElement[bool],
    ) -> bool:
        """Conditionally update one order.

        Writes ``values`` only if the order's status is still one of
        ``expected_statuses`` (and every extra criterion holds) at the moment
        of the write, then commits.

        Returns:
            True if exactly one row changed, False if the update was a no-op.

        Raises:
            SQLAlchemyError: storage fault; the session is rolled back first.
        """
        expected = list(expected_statuses)
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status.in_(expected), *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

        won = result.rowcount == 1
        logger.debug(
            "order_conditional_update",
            order_id=order_id,
            expected_statuses=[s.value for s in expected],
            fields=sorted(values),
            applied=won,
        )
        return won

    def apply(self, order_id: str, transition: Transition, actor_id: int | None) -> bool:
        """Run ``transition`` on an order as one conditional update.

        The WHERE clause is derived from the transition row: allowed source
        statuses, order type and free counterparty slot for takes, the seller
        cap when the taker becomes the seller, actor role columns, and
        required non-empty fields.
        """
        criteria: list[ColumnElement[bool]] = []
        values: dict[str, Any] = {"status": transition.target}

        if transition.is_take:
            role_column = getattr(Order, transition.assigns.column)
            criteria += [
                Order.type == transition.order_type,
                Order.creator_id != actor_id,
                role_column.is_(None),
            ]
            values[transition.assigns.column] = actor_id
            values["taken_at"] = datetime.now(UTC)
            # A seller awaiting release on another order may not take on more
            if transition.assigns is TradeRole.SELLER:
                criteria.append(self.seller_free_of(actor_id, OrderStatus.FIAT_SENT))
        elif transition.actor_roles:
            criteria.append(
                or_(*(getattr(Order, role.column) == actor_id for role in transition.actor_roles))
            )

        for column in transition.requires:
            attr = getattr(Order, column)
            criteria.append(and_(attr.is_not(None), attr != ""))

        return self.update_if(order_id, transition.sources, values, *criteria)
