"""Maps chat-platform identities to ``User`` records."""

from sqlalchemy.exc import IntegrityError

from lnp2p.core.events.base import EventBus
from lnp2p.trading.application.notifications import NotificationSink
from lnp2p.trading.domain.enums import RejectReason
from lnp2p.trading.domain.models import User
from lnp2p.trading.domain.outcomes import Accepted, Outcome
from lnp2p.trading.domain.value_objects import ActorIdentity
from lnp2p.trading.infrastructure.repository import UserRepository

from .base import TradeService, storage_guarded


class ActorResolver(TradeService):
    """Resolve, lazily provision and gate the users behind inbound events."""

    def __init__(
        self,
        users: UserRepository,
        sink: NotificationSink | None = None,
        event_bus: EventBus | None = None,
    ):
        super().__init__(sink=sink, event_bus=event_bus)
        self.users = users

    def _recover(self) -> None:
        self.users.session.rollback()

    @storage_guarded(actor_arg="identity")
    def resolve_user(self, identity: ActorIdentity, allow_create: bool = False) -> Outcome[User]:
        """Find the user behind ``identity``.

        Args:
            identity: Who sent the event
            allow_create: Provision a new user on first contact (e.g. /start)

        Returns:
            Accepted(User), or a rejection: ``UNKNOWN_USER`` when absent and
            not allowed to create, ``USER_BANNED`` for banned users.
        """
        user = self.users.find_by_external_id(identity.external_id)

        if user is None:
            if not allow_create:
                return self._reject(identity, RejectReason.UNKNOWN_USER)
            user = self._provision(identity)

        if user.banned:
            return self._reject(identity, RejectReason.USER_BANNED)

        return Accepted(user)

    @storage_guarded(actor_arg="identity")
    def require_admin(self, identity: ActorIdentity) -> Outcome[User]:
        """Resolve without creating and insist on admin rights."""
        user = self.users.find_by_external_id(identity.external_id)
        if user is None:
            return self._reject(identity, RejectReason.UNKNOWN_USER)
        if not user.admin:
            return self._reject(identity, RejectReason.NOT_ADMIN)
        return Accepted(user)

    def _provision(self, identity: ActorIdentity) -> User:
        """Create the user; a concurrent first contact that won the insert is reused."""
        try:
            user = self.users.create(identity)
        except IntegrityError:
            existing = self.users.find_by_external_id(identity.external_id)
            if existing is None:
                raise
            self.logger.info(
                "user_create_race_lost",
                external_id=identity.external_id,
                user_id=existing.id,
            )
            return existing

        self.logger.info("user_created", external_id=identity.external_id, user_id=user.id)
        return user
