"""Trading services: argument parsing, validation, actor resolution and guards."""

from .actor_resolver import ActorResolver
from .arguments import ORDER_ARGUMENT_COUNT, parse_order_arguments, require_exact_args
from .base import TradeService, storage_guarded
from .escrow_guard import EscrowGuard
from .order_guard import OrderGuard
from .validators import (
    ISO_4217_CODES,
    MIN_AMOUNT_SATS,
    MIN_FIAT_AMOUNT,
    is_integer_amount,
    is_iso4217,
    is_number,
    is_valid_order_id,
    validate_invoice,
    validate_order_id,
    validate_order_terms,
)

__all__ = [
    "ActorResolver",
    "EscrowGuard",
    "ISO_4217_CODES",
    "MIN_AMOUNT_SATS",
    "MIN_FIAT_AMOUNT",
    "ORDER_ARGUMENT_COUNT",
    "OrderGuard",
    "TradeService",
    "is_integer_amount",
    "is_iso4217",
    "is_number",
    "is_valid_order_id",
    "parse_order_arguments",
    "require_exact_args",
    "storage_guarded",
    "validate_invoice",
    "validate_order_id",
    "validate_order_terms",
]
