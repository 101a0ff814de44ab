"""Payment gateway bridges.

``MockPaymentGateway`` is the default: orders are fabricated locally and every
verification succeeds. ``RazorpayGateway`` creates orders over the Razorpay
REST API and checks the checkout signature, an HMAC-SHA256 of
``"<order_id>|<payment_id>"`` keyed with the account secret.
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Protocol

import httpx

from consultations.core.errors import BridgeFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentOrder:
    order_id: str
    amount: int  # smallest currency unit
    currency: str
    receipt: str


class PaymentGateway(Protocol):
    def create_order(self, amount: int, reference: str) -> PaymentOrder: ...

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool: ...


def to_minor_units(amount: int) -> int:
    return int(amount) * 100


class MockPaymentGateway:
    def __init__(self, currency: str = 'INR') -> None:
        self.currency = currency

    def create_order(self, amount: int, reference: str) -> PaymentOrder:
        order = PaymentOrder(
            order_id=f'order_{int(time.time() * 1000)}',
            amount=to_minor_units(amount),
            currency=self.currency,
            receipt=reference,
        )
        logger.info('Mock payment order %s created for %s', order.order_id, reference)
        return order

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        logger.info('Mock payment verification accepted for order %s', order_id)
        return True


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    payload = f'{order_id}|{payment_id}'.encode('utf-8')
    return hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).hexdigest()


class RazorpayGateway:
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = 'https://api.razorpay.com/v1',
        currency: str = 'INR',
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.key_secret = key_secret
        self.currency = currency
        self.client = httpx.Client(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )

    def create_order(self, amount: int, reference: str) -> PaymentOrder:
        payload = {'amount': to_minor_units(amount), 'currency': self.currency, 'receipt': reference}
        try:
            response = self.client.post('/orders', json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error('Razorpay order creation failed for %s: %s', reference, exc)
            raise BridgeFailure('Error creating payment order.') from exc

        data = response.json()
        return PaymentOrder(
            order_id=data['id'],
            amount=data.get('amount', payload['amount']),
            currency=data.get('currency', self.currency),
            receipt=data.get('receipt', reference),
        )

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not (order_id and payment_id and signature):
            return False
        expected = compute_signature(self.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected, signature)
