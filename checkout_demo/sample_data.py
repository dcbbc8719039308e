"""Deterministic sample catalog data.

Each function builds its own seeded Faker, so the same seed always yields
the same data and nothing leaks between calls.
"""

from decimal import Decimal
from typing import Any, Dict, List

from faker import Faker


def _faker(seed: int) -> Faker:
    fake = Faker()
    fake.seed_instance(seed)
    return fake


def _product(fake: Faker) -> Dict[str, Any]:
    return {
        "name": fake.catch_phrase(),
        "description": fake.sentence(nb_words=10),
        "images": [fake.image_url()],
        "metadata": {"sku": fake.ean8(), "color": fake.color_name()},
    }


def fake_product(seed: int) -> Dict[str, Any]:
    return _product(_faker(seed))


def fake_products(count: int, seed: int) -> List[Dict[str, Any]]:
    fake = _faker(seed)
    return [_product(fake) for _ in range(count)]


def fake_unit_price(seed: int) -> Decimal:
    """A price between 1.00 and 500.00 in major units."""
    cents = _faker(seed).random_int(min=100, max=50000)
    return Decimal(cents) / 100
