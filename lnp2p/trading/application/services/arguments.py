"""Command argument parsing.

Pure functions turning the text of a chat command into positional fields.
"""

import shlex

from lnp2p.trading.domain.enums import RejectReason
from lnp2p.trading.domain.outcomes import Accepted, Outcome, reject
from lnp2p.trading.domain.value_objects import OrderArguments

# /buy and /sell: <amount> <fiat_amount> <fiat_code> <payment_method>
ORDER_ARGUMENT_COUNT = 4


def parse_order_arguments(text: str) -> Outcome[OrderArguments]:
    """Split ``/sell 500 10 usd "bank transfer"`` into its four fields.

    Tokens are separated by whitespace; double quotes let the payment method
    contain spaces. Anything but exactly four arguments after the command
    word is ``MALFORMED_ARGS``.
    """
    try:
        tokens = shlex.split(text or "")
    except ValueError:
        # Unbalanced quotes
        return reject(RejectReason.MALFORMED_ARGS)

    args = tokens[1:]
    if len(args) != ORDER_ARGUMENT_COUNT:
        return reject(RejectReason.MALFORMED_ARGS)

    amount, fiat_amount, fiat_code, payment_method = args
    return Accepted(
        OrderArguments(
            amount=amount,
            fiat_amount=fiat_amount,
            fiat_code=fiat_code,
            payment_method=payment_method,
        )
    )


def require_exact_args(text: str, expected_count: int) -> Outcome[list[str]]:
    """Positional arguments of a command that takes exactly ``expected_count``.

    >>> require_exact_args("/release  abc ", 1).value
    ['abc']
    """
    tokens = [token for token in (text or "").split() if token]
    command = tokens[0] if tokens else ""
    args = tokens[1:]
    if len(args) != expected_count:
        return reject(
            RejectReason.ARG_COUNT_MISMATCH,
            command=command,
            expected=expected_count,
            actual=len(args),
        )
    return Accepted(args)
