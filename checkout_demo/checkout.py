import logging
from enum import Enum
from typing import Dict, Optional

from checkout_demo.config import StripeConfig
from checkout_demo.errors import ValidationError
from checkout_demo.money import normalize_currency
from checkout_demo.resources import StripeGateway

logger = logging.getLogger(__name__)


class PaymentIntentStatus(str, Enum):
    """Payment intent statuses. Only the provider moves an intent between them."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    REQUIRES_CAPTURE = "requires_capture"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (PaymentIntentStatus.SUCCEEDED, PaymentIntentStatus.CANCELED)


def create_payment_intent(gateway: StripeGateway, amount: int, currency: str = "eur",
                          order_id: Optional[str] = None, metadata: Optional[Dict[str, str]] = None):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(f"amount must be a positive integer of minor units, got {amount!r}")

    payload = {
        "amount": amount,
        "currency": normalize_currency(currency),
        "automatic_payment_methods": {"enabled": True},
    }
    metadata = dict(metadata or {})
    if order_id:
        metadata["order_id"] = order_id
    if metadata:
        payload["metadata"] = metadata

    return gateway.payment_intents.create(payload, idempotency_key=order_id)


def checkout_handoff(intent, config: StripeConfig) -> Dict[str, Optional[str]]:
    """What the browser-side payment widget needs to confirm ``intent``."""
    return {
        "payment_intent": intent.id,
        "client_secret": intent.client_secret,
        "publishable_key": config.publishable_key,
    }


def payment_intent_status(gateway: StripeGateway, intent_id: str) -> PaymentIntentStatus:
    intent = gateway.payment_intents.get(intent_id)
    return PaymentIntentStatus(intent.status)
