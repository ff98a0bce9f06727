"""BOLT-11 payment request decoding.

The guards only depend on the ``InvoiceDecoder`` protocol. The shipped
implementation asks the operator's LND node to decode the request through
its REST gateway (``GET /v1/payreq/{pay_req}``), so no BOLT-11 parsing lives
in this package.
"""

import re
import ssl
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx

from lnp2p.exceptions import InvoiceDecodeError
from lnp2p.trading.domain.value_objects import DecodedInvoice
from lnp2p.utils.config import Settings
from lnp2p.utils.logging import get_logger

logger = get_logger(__name__)

# BOLT-11: "ln" + currency and amount, the "1" separator, bech32 data part
_PAYMENT_REQUEST_RE = re.compile(r"ln[a-z0-9]+1[qpzry9x8gf2tvdw0s3jn54khce6mua7l]+")


class InvoiceDecoder(Protocol):
    """Turns a payment request into a ``DecodedInvoice``.

    Implementations raise ``InvoiceDecodeError`` for anything they cannot
    decode, including transport failures.
    """

    def decode(self, payment_request: str) -> DecodedInvoice: ...


class LNDRestInvoiceDecoder:
    """Decode payment requests with LND's ``DecodePayReq`` REST endpoint."""

    name = "lnd_rest"

    def __init__(
        self,
        base_url: str = "https://localhost:8080",
        macaroon_hex: str | None = None,
        tls_cert_path: str | None = None,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ):
        headers = {"User-Agent": "lnp2p/0.3"}
        if macaroon_hex:
            headers["Grpc-Metadata-macaroon"] = macaroon_hex

        verify: ssl.SSLContext | bool = True
        if tls_cert_path:
            verify = ssl.create_default_context(cafile=str(tls_cert_path))

        self.client = client or httpx.Client(
            base_url=base_url,
            headers=headers,
            verify=verify,
            timeout=httpx.Timeout(timeout_seconds, connect=5.0),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "LNDRestInvoiceDecoder":
        return cls(
            base_url=settings.lnd_rest_url,
            macaroon_hex=settings.lnd_macaroon_hex,
            tls_cert_path=settings.lnd_tls_cert_path,
            timeout_seconds=settings.lnd_timeout_seconds,
        )

    def decode(self, payment_request: str) -> DecodedInvoice:
        request = (payment_request or "").strip()
        if not request:
            raise InvoiceDecodeError("Empty payment request", decoder=self.name)
        # Only bech32 characters may reach the node's URL path
        if not _PAYMENT_REQUEST_RE.fullmatch(request.lower()):
            raise InvoiceDecodeError("Not a BOLT-11 payment request", decoder=self.name)

        try:
            response = self.client.get(f"/v1/payreq/{request}")
        except httpx.HTTPError as e:
            logger.warning("invoice_decoder_unreachable", error=str(e), error_type=type(e).__name__)
            raise InvoiceDecodeError(
                "LND unreachable while decoding invoice", decoder=self.name, original_error=e
            ) from e

        if response.status_code != 200:
            raise InvoiceDecodeError(
                "LND refused to decode payment request",
                decoder=self.name,
                status_code=response.status_code,
            )

        try:
            return self._to_decoded(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise InvoiceDecodeError(
                "Malformed DecodePayReq response", decoder=self.name, original_error=e
            ) from e

    @staticmethod
    def _to_decoded(data: dict[str, Any]) -> DecodedInvoice:
        # LND encodes int64 fields as JSON strings
        created = int(data["timestamp"])
        expiry = int(data.get("expiry") or 3600)
        expires_at = datetime.fromtimestamp(created + expiry, UTC)
        amount = int(data.get("num_satoshis") or 0)

        return DecodedInvoice(
            amount_sats=amount or None,
            expires_at=expires_at,
            is_expired=datetime.now(UTC) >= expires_at,
            destination=data.get("destination") or None,
            payment_hash=data.get("payment_hash") or None,
        )

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()
