"""Payment rail adapters used by the payout processor.

The processor only talks to the ``PaymentRail`` protocol. A simulated rail is
used when no provider URL is configured; ``HttpPaymentRail`` posts transfers to
a provider endpoint with ``requests``.
"""
from dataclasses import dataclass
from decimal import Decimal
import logging
import uuid
from typing import Optional, Protocol, runtime_checkable

import requests

from app.services.exceptions import ExternalRailError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayoutAccount:
    """Destination for a transfer, built once from a stored bank account."""
    account_id: int
    holder_name: str
    bank_name: str
    card_last4: str


@dataclass(frozen=True)
class TransferResult:
    transfer_id: str
    status: str


@runtime_checkable
class PaymentRail(Protocol):
    def create_transfer(self, account: PayoutAccount, amount: Decimal, description: str,
                        idempotency_key: Optional[str] = None) -> TransferResult:
        ...


class SimulatedPaymentRail:
    """Accepts every transfer without moving money."""

    def create_transfer(self, account, amount, description, idempotency_key=None):
        transfer_id = f"tr_{uuid.uuid4().hex[:24]}"
        logger.info("Simulated transfer %s of %s to account %s", transfer_id, amount, account.account_id)
        return TransferResult(transfer_id=transfer_id, status="completed")


class HttpPaymentRail:
    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10, session=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_transfer(self, account, amount, description, idempotency_key=None):
        headers = {"Idempotency-Key": idempotency_key or uuid.uuid4().hex}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {
            "amount": str(amount),
            "currency": "usd",
            "description": description,
            "destination": {
                "account_id": account.account_id,
                "holder_name": account.holder_name,
                "bank_name": account.bank_name,
                "last4": account.card_last4,
            },
        }
        try:
            resp = self.session.post(
                f"{self.base_url}/transfers", json=payload, headers=headers, timeout=self.timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise ExternalRailError(f"Payment rail request failed: {exc}") from exc
        if not isinstance(data, dict):
            raise ExternalRailError("Payment rail response is not a JSON object")
        transfer_id = data.get("id")
        if not transfer_id:
            raise ExternalRailError("Payment rail response missing transfer id")
        return TransferResult(transfer_id=transfer_id, status=data.get("status", "pending"))


def build_payment_rail(config) -> PaymentRail:
    url = config.get("PAYMENT_RAIL_URL")
    if url:
        return HttpPaymentRail(
            url,
            api_key=config.get("PAYMENT_RAIL_API_KEY"),
            timeout=config.get("PAYMENT_RAIL_TIMEOUT", 10),
        )
    return SimulatedPaymentRail()
