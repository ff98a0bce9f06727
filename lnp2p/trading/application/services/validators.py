"""Field validators for order commands and buyer invoices.

Predicates take one primitive value and answer yes or no. The composite
checks apply them in a fixed order and stop at the first failure, returning
a ``Rejection`` that names the field and the bound that was violated.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from uuid import UUID

from lnp2p.exceptions import InvoiceDecodeError
from lnp2p.trading.domain.enums import OrderType, RejectReason
from lnp2p.trading.domain.outcomes import Accepted, Outcome, Rejection, reject
from lnp2p.trading.domain.value_objects import DecodedInvoice, OrderTerms
from lnp2p.trading.infrastructure.invoice_decoder import InvoiceDecoder
from lnp2p.utils.logging import get_logger

from .arguments import parse_order_arguments

logger = get_logger(__name__)

MIN_AMOUNT_SATS = 100
MIN_FIAT_AMOUNT = 1
# 21 million BTC
MAX_AMOUNT_SATS = 21_000_000 * 100_000_000
# Largest value an orders.fiat_amount NUMERIC(18, 2) column holds
MAX_FIAT_AMOUNT = Decimal("9999999999999999.99")
FIAT_DECIMALS = 2

# ISO 4217 alphabetic codes in circulation, plus fund and precious metal
# codes. XTS (testing) and XXX (no currency) are left out.
ISO_4217_CODES: frozenset[str] = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND
    BOB BOV BRL BSD BTN BWP BYN BZD CAD CDF CHE CHF CHW CLF CLP CNY COP COU
    CRC CUC CUP CVE CZK DJF DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS
    GIP GMD GNF GTQ GYD HKD HNL HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY
    KES KGS KHR KMF KPW KRW KWD KYD KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA
    MKD MMK MNT MOP MRU MUR MVR MWK MXN MXV MYR MZN NAD NGN NIO NOK NPR NZD
    OMR PAB PEN PGK PHP PKR PLN PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK
    SGD SHP SLE SLL SOS SRD SSP STN SVC SYP SZL THB TJS TMT TND TOP TRY TTD
    TWD TZS UAH UGX USD USN UYI UYU UYW UZS VED VES VND VUV WST XAF XAG XAU
    XBA XBB XBC XBD XCD XCG XDR XOF XPD XPF XPT XSU XUA YER ZAR ZMW ZWG ZWL
    """.split()
)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_integer_amount(value: str) -> bool:
    try:
        int(str(value).strip())
    except ValueError:
        return False
    return True


def is_number(value: str) -> bool:
    """Finite decimal number; NaN and infinities are not numbers here."""
    try:
        return Decimal(str(value).strip()).is_finite()
    except InvalidOperation:
        return False


def is_iso4217(code: str) -> bool:
    return isinstance(code, str) and code.strip().upper() in ISO_4217_CODES


def is_valid_order_id(value: str) -> bool:
    """Order ids are canonical UUID strings."""
    try:
        return str(UUID(str(value))) == str(value).lower()
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Composite checks
# ---------------------------------------------------------------------------


def validate_order_terms(direction: OrderType, text: str) -> Outcome[OrderTerms]:
    """Parse and validate the arguments of a /buy or /sell command.

    Buy and sell share one rule set; ``direction`` only selects which usage
    hint accompanies ``MALFORMED_ARGS``.
    """
    parsed = parse_order_arguments(text)
    if isinstance(parsed, Rejection):
        return reject(RejectReason.MALFORMED_ARGS, usage=OrderType(direction).value)
    args = parsed.value

    if not is_integer_amount(args.amount):
        return reject(RejectReason.NOT_INTEGER, field="amount")
    amount = int(args.amount.strip())
    if amount != 0 and amount < MIN_AMOUNT_SATS:
        return reject(RejectReason.BELOW_MINIMUM, field="amount", minimum=MIN_AMOUNT_SATS)
    if amount > MAX_AMOUNT_SATS:
        return reject(RejectReason.ABOVE_MAXIMUM, field="amount", maximum=MAX_AMOUNT_SATS)

    if not is_number(args.fiat_amount):
        return reject(RejectReason.NOT_NUMBER, field="fiat_amount")
    fiat_amount = Decimal(args.fiat_amount.strip())
    if fiat_amount < MIN_FIAT_AMOUNT:
        return reject(RejectReason.BELOW_MINIMUM, field="fiat_amount", minimum=MIN_FIAT_AMOUNT)
    if fiat_amount > MAX_FIAT_AMOUNT:
        return reject(
            RejectReason.ABOVE_MAXIMUM, field="fiat_amount", maximum=str(MAX_FIAT_AMOUNT)
        )
    # Stored as NUMERIC(18, 2); more precision would be rounded away silently
    if fiat_amount != fiat_amount.quantize(Decimal(1).scaleb(-FIAT_DECIMALS)):
        return reject(RejectReason.NOT_NUMBER, field="fiat_amount", decimals=FIAT_DECIMALS)

    if not is_iso4217(args.fiat_code):
        return reject(RejectReason.INVALID_CURRENCY, field="fiat_code")

    return Accepted(
        OrderTerms(
            amount=amount,
            fiat_amount=fiat_amount,
            fiat_code=args.fiat_code.strip().upper(),
            payment_method=args.payment_method,
        )
    )


def validate_order_id(value: str) -> Outcome[str]:
    if not is_valid_order_id(value):
        return reject(RejectReason.INVALID_ORDER_ID)
    return Accepted(str(UUID(str(value))))


def validate_invoice(
    payment_request: str,
    window: timedelta,
    decoder: InvoiceDecoder,
    now: datetime | None = None,
) -> Outcome[DecodedInvoice]:
    """Decide whether a buyer invoice may be attached to an order.

    The invoice must stay payable for at least ``window`` from ``now``:
    releasing escrow may take that long, and paying an expired invoice is
    impossible. An invoice expiring exactly at ``now + window`` passes.
    """
    now = now or datetime.now(UTC)
    try:
        invoice = decoder.decode(payment_request)
    except (InvoiceDecodeError, ValueError) as e:
        logger.info("invoice_unparseable", error=str(e), error_type=type(e).__name__)
        return reject(RejectReason.UNPARSEABLE_INVOICE)

    if invoice.amount_sats and invoice.amount_sats < MIN_AMOUNT_SATS:
        return reject(RejectReason.BELOW_MINIMUM, field="invoice_amount", minimum=MIN_AMOUNT_SATS)

    latest_acceptable = now + window
    if invoice.expires_at < latest_acceptable:
        return reject(
            RejectReason.EXPIRATION_TOO_SOON,
            expires_at=invoice.expires_at.isoformat(),
            window_seconds=int(window.total_seconds()),
        )

    if invoice.is_expired is not False:
        return reject(RejectReason.ALREADY_EXPIRED)

    if not invoice.destination:
        return reject(RejectReason.MISSING_DESTINATION)

    if not invoice.payment_hash:
        return reject(RejectReason.MISSING_PAYMENT_HASH)

    return Accepted(invoice)
