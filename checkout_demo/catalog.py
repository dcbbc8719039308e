"""Products, prices and payment links.

Prices reference products and payment links reference prices; the helpers
here build those compositions on top of the plain resource clients.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from checkout_demo.errors import NotFoundError, ValidationError
from checkout_demo.money import normalize_currency, to_minor_units
from checkout_demo.resources import StripeGateway

logger = logging.getLogger(__name__)

MAX_LINE_ITEMS = 20

# Fields Stripe accepts inside a price's embedded product_data
PRODUCT_DATA_FIELDS = frozenset({
    "name", "active", "metadata", "statement_descriptor", "tax_code", "unit_label",
})


def create_product(gateway: StripeGateway, name: str, description: Optional[str] = None,
                   images: Optional[List[str]] = None, metadata: Optional[Dict[str, str]] = None):
    if not name or not name.strip():
        raise ValidationError("A product needs a name")
    payload: Dict[str, Any] = {"name": name}
    if description:
        payload["description"] = description
    if images:
        payload["images"] = list(images)
    if metadata:
        payload["metadata"] = dict(metadata)
    return gateway.products.create(payload)


def update_product(gateway: StripeGateway, product_id: str, **fields):
    patch = {key: value for key, value in fields.items() if value is not None}
    return gateway.products.update(product_id, patch)


def archive_product(gateway: StripeGateway, product_id: str):
    return gateway.products.update(product_id, {"active": False})


def _price_payload(amount, currency: str, lookup_key: Optional[str], transfer_lookup_key: bool) -> Dict[str, Any]:
    currency = normalize_currency(currency)
    payload: Dict[str, Any] = {
        "unit_amount": to_minor_units(amount, currency),
        "currency": currency,
    }
    if lookup_key:
        payload["lookup_key"] = lookup_key
        if transfer_lookup_key:
            payload["transfer_lookup_key"] = True
    return payload


def create_price(gateway: StripeGateway, product_id: str, amount, currency: str = "eur",
                 lookup_key: Optional[str] = None, transfer_lookup_key: bool = False):
    """Create a one-off price for an existing product.

    ``amount`` is in major units (``19.99``); it is sent as minor units.
    """
    if not product_id:
        raise ValidationError("A price needs a product id")
    payload = _price_payload(amount, currency, lookup_key, transfer_lookup_key)
    payload["product"] = product_id
    return gateway.prices.create(payload)


def create_price_with_product(gateway: StripeGateway, product_data: Dict[str, Any], amount,
                              currency: str = "eur", lookup_key: Optional[str] = None,
                              transfer_lookup_key: bool = False):
    """Create a price and its product in one call.

    Stripe creates both server-side, so there is never a product without
    its price.
    """
    unsupported = set(product_data) - PRODUCT_DATA_FIELDS
    if unsupported:
        raise ValidationError(
            f"Unsupported product_data fields: {', '.join(sorted(unsupported))}"
        )
    if not product_data.get("name"):
        raise ValidationError("product_data needs a name")

    payload = _price_payload(amount, currency, lookup_key, transfer_lookup_key)
    payload["product_data"] = dict(product_data)
    return gateway.prices.create(payload)


def prices_for_lookup_key(gateway: StripeGateway, lookup_key: str) -> List[Any]:
    return list(gateway.prices.list_all({"lookup_keys": [lookup_key]}))


def price_for_lookup_key(gateway: StripeGateway, lookup_key: str):
    prices = prices_for_lookup_key(gateway, lookup_key)
    if not prices:
        raise NotFoundError(f"No price with lookup key {lookup_key!r}")
    return prices[0]


def line_items_for(prices: Iterable[Any], quantity: int = 1) -> List[Dict[str, Any]]:
    """Project prices (objects or ids) onto payment-link line items, in order."""
    if isinstance(prices, str):
        prices = [prices]
    if quantity < 1:
        raise ValidationError("Line item quantity must be at least 1")
    items = [
        {"price": price if isinstance(price, str) else price.id, "quantity": quantity}
        for price in prices
    ]
    if not items:
        raise ValidationError("A payment link needs at least one line item")
    if len(items) > MAX_LINE_ITEMS:
        raise ValidationError(
            f"A payment link accepts at most {MAX_LINE_ITEMS} line items, got {len(items)}"
        )
    return items


def create_payment_link(gateway: StripeGateway, prices: Sequence[Any], quantity: int = 1,
                        payment_method_types: Optional[List[str]] = None,
                        shipping_countries: Optional[List[str]] = None,
                        billing_address_collection: Optional[str] = None,
                        collect_phone_number: bool = False):
    payload: Dict[str, Any] = {"line_items": line_items_for(prices, quantity)}
    if payment_method_types:
        payload["payment_method_types"] = list(payment_method_types)
    if shipping_countries:
        payload["shipping_address_collection"] = {
            "allowed_countries": [country.upper() for country in shipping_countries]
        }
    if billing_address_collection:
        if billing_address_collection not in ("auto", "required"):
            raise ValidationError(
                f"billing_address_collection must be 'auto' or 'required', got {billing_address_collection!r}"
            )
        payload["billing_address_collection"] = billing_address_collection
    if collect_phone_number:
        payload["phone_number_collection"] = {"enabled": True}

    link = gateway.payment_links.create(payload)
    logger.info("Payment link %s covers %d price(s)", link.id, len(payload["line_items"]))
    return link


def create_payment_link_from_prices(gateway: StripeGateway, limit: int = 3,
                                    filters: Optional[Dict[str, Any]] = None, **options):
    """Build a payment link from the first ``limit`` active prices."""
    if limit > MAX_LINE_ITEMS:
        raise ValidationError(
            f"A payment link accepts at most {MAX_LINE_ITEMS} line items, got limit={limit}"
        )
    page = gateway.prices.list({"active": True, **(filters or {})}, limit=limit)
    return create_payment_link(gateway, page.items, **options)
