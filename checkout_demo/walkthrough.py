"""End-to-end tour of the catalog and checkout flow against a test account.

    python -m checkout_demo.walkthrough

Creates a handful of sample products, pages through them, prices them,
bundles the prices into a payment link and prepares a payment intent for
the checkout widget.
"""

import logging
from typing import Any, Dict

from checkout_demo import catalog, checkout
from checkout_demo.config import configure_transport, load_config
from checkout_demo.resources import StripeGateway
from checkout_demo.sample_data import fake_products, fake_unit_price

logger = logging.getLogger(__name__)

LOOKUP_KEY = "fakeProductKey"


def run_walkthrough(gateway: StripeGateway, seed: int = 0, product_count: int = 3,
                    page_size: int = 2) -> Dict[str, Any]:
    created = [
        catalog.create_product(gateway, **data)
        for data in fake_products(product_count, seed)
    ]
    created_ids = {product.id for product in created}

    listed = [product for product in gateway.products.list_all(page_size=page_size)
              if product.id in created_ids]
    logger.info("Listed %d of %d new products", len(listed), len(created))

    first = created[0]
    catalog.update_product(gateway, first.id, description=f"Updated: {first.name}")

    keyed_price = catalog.create_price_with_product(
        gateway,
        {"name": f"{first.name} (bundle)", "metadata": {"source": "walkthrough"}},
        fake_unit_price(seed),
        lookup_key=LOOKUP_KEY,
        transfer_lookup_key=True,
    )

    prices = [
        catalog.create_price(gateway, product.id, fake_unit_price(seed + index + 1))
        for index, product in enumerate(created)
    ]

    link = catalog.create_payment_link(
        gateway, prices,
        payment_method_types=["card"],
        billing_address_collection="required",
    )

    total = sum(price.unit_amount for price in prices)
    intent = checkout.create_payment_intent(gateway, total, currency="eur",
                                            order_id=f"walkthrough-{seed}-{link.id}")

    return {
        "products": [product.id for product in created],
        "listed": len(listed),
        "lookup_price": keyed_price.id,
        "prices": [price.id for price in prices],
        "payment_link": link.url,
        "checkout": checkout.checkout_handoff(intent, gateway.config),
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    config = load_config(prompt=True)
    configure_transport(config)
    summary = run_walkthrough(StripeGateway(config))
    logger.info("Payment link: %s", summary["payment_link"])
    logger.info("Payment intent ready: %s", summary["checkout"]["payment_intent"])
