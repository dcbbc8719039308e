import copy
import itertools
from types import SimpleNamespace

import pytest
import stripe

from checkout_demo.config import StripeConfig
from checkout_demo.resources import StripeGateway

REQUEST_OPTIONS = ("api_key", "stripe_version", "stripe_account", "idempotency_key")


class FakeObject(dict):
    """Dict with attribute access, like the SDK's StripeObject."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)


def _clone(obj):
    return FakeObject({key: copy.deepcopy(value) for key, value in obj.items()})


def _missing(kind, resource_id):
    return stripe.InvalidRequestError(
        f"No such {kind}: '{resource_id}'", "id", code="resource_missing", http_status=404
    )


def _invalid(message, param):
    return stripe.InvalidRequestError(message, param, code="parameter_invalid", http_status=400)


class FakeResource:
    """In-memory stand-in for a Stripe resource class.

    Keeps objects in insertion order and pages them with ``limit`` and
    ``starting_after`` the way the API does.
    """

    OBJECT_NAME = "object"
    PREFIX = "obj"
    DEFAULTS = {}

    store = None
    calls = None
    seen_keys = None

    @classmethod
    def _split(cls, params):
        options = {key: params.pop(key) for key in REQUEST_OPTIONS if key in params}
        return options, params

    @classmethod
    def _matches(cls, obj, filters):
        for key, value in filters.items():
            if key == "lookup_keys":
                if obj.get("lookup_key") not in value:
                    return False
            elif obj.get(key) != value:
                return False
        return True

    @classmethod
    def _prepare(cls, params):
        return params

    @classmethod
    def create(cls, **params):
        options, params = cls._split(params)
        cls.calls.append(("create", options, copy.deepcopy(params)))

        key = options.get("idempotency_key")
        if key and key in cls.seen_keys:
            return _clone(cls.seen_keys[key])

        params = cls._prepare(params)
        obj = FakeObject(copy.deepcopy(cls.DEFAULTS))
        obj.update(params)
        obj["id"] = f"{cls.PREFIX}_{next(cls.counter):04d}"
        obj["object"] = cls.OBJECT_NAME
        cls._finish(obj)
        cls.store[obj["id"]] = obj
        if key:
            cls.seen_keys[key] = obj
        return _clone(obj)

    @classmethod
    def _finish(cls, obj):
        pass

    @classmethod
    def list(cls, **params):
        options, params = cls._split(params)
        cls.calls.append(("list", options, dict(params)))
        limit = params.pop("limit", 10)
        cursor = params.pop("starting_after", None)

        matching = [obj for obj in cls.store.values() if cls._matches(obj, params)]
        start = 0
        if cursor:
            ids = [obj["id"] for obj in matching]
            if cursor not in ids:
                raise _missing(cls.OBJECT_NAME, cursor)
            start = ids.index(cursor) + 1

        data = [_clone(obj) for obj in matching[start:start + limit]]
        return FakeObject(object="list", data=data, has_more=start + limit < len(matching))

    @classmethod
    def retrieve(cls, resource_id, **params):
        options, params = cls._split(params)
        cls.calls.append(("retrieve", options, {"id": resource_id, **params}))
        if resource_id not in cls.store:
            raise _missing(cls.OBJECT_NAME, resource_id)
        return _clone(cls.store[resource_id])

    @classmethod
    def modify(cls, resource_id, **params):
        options, params = cls._split(params)
        cls.calls.append(("modify", options, {"id": resource_id, **params}))
        if resource_id not in cls.store:
            raise _missing(cls.OBJECT_NAME, resource_id)
        obj = cls.store[resource_id]
        for key, value in params.items():
            if key == "metadata":
                obj["metadata"] = {**obj.get("metadata", {}), **value}
            else:
                obj[key] = copy.deepcopy(value)
        return _clone(obj)


class FakeProduct(FakeResource):
    OBJECT_NAME = "product"
    PREFIX = "prod"
    DEFAULTS = {"description": None, "images": [], "metadata": {}, "active": True}


class FakePrice(FakeResource):
    OBJECT_NAME = "price"
    PREFIX = "price"
    DEFAULTS = {"lookup_key": None, "metadata": {}, "active": True, "type": "one_time"}

    @classmethod
    def _prepare(cls, params):
        lookup_key = params.get("lookup_key")
        transfer = params.pop("transfer_lookup_key", False)
        if lookup_key:
            holders = [obj for obj in cls.store.values() if obj.get("lookup_key") == lookup_key]
            if holders and not transfer:
                raise _invalid(
                    f"A price (`{holders[0]['id']}`) already uses that lookup key.", "lookup_key"
                )
            for holder in holders:
                holder["lookup_key"] = None

        product_data = params.pop("product_data", None)
        if product_data is not None:
            params["product"] = cls.products.create(**product_data)["id"]
        return params


class FakePaymentLink(FakeResource):
    OBJECT_NAME = "payment_link"
    PREFIX = "plink"
    DEFAULTS = {"active": True, "metadata": {}}

    @classmethod
    def _prepare(cls, params):
        line_items = params.get("line_items") or []
        if not 1 <= len(line_items) <= 20:
            raise _invalid("Invalid array: line_items must have between 1 and 20 items", "line_items")
        for item in line_items:
            if item["price"] not in cls.prices.store:
                raise _missing("price", item["price"])
        return params

    @classmethod
    def _finish(cls, obj):
        obj["url"] = f"https://buy.stripe.com/test_{obj['id']}"


class FakePaymentIntent(FakeResource):
    OBJECT_NAME = "payment_intent"
    PREFIX = "pi"
    DEFAULTS = {"status": "requires_payment_method", "metadata": {}}

    @classmethod
    def _finish(cls, obj):
        obj["client_secret"] = f"{obj['id']}_secret_test"


def _fresh(base):
    return type(base.__name__, (base,), {
        "store": {},
        "calls": [],
        "seen_keys": {},
        "counter": itertools.count(1),
    })


@pytest.fixture
def fake_stripe():
    products = _fresh(FakeProduct)
    prices = _fresh(FakePrice)
    prices.products = products
    payment_links = _fresh(FakePaymentLink)
    payment_links.prices = prices
    payment_intents = _fresh(FakePaymentIntent)
    return SimpleNamespace(
        Product=products, Price=prices, PaymentLink=payment_links, PaymentIntent=payment_intents
    )


@pytest.fixture
def config():
    return StripeConfig(
        secret_key="sk_test_123",
        publishable_key="pk_test_123",
        retry_base_delay=0.5,
        retry_max_delay=8.0,
    )


@pytest.fixture
def gateway(monkeypatch, fake_stripe, config):
    # Route the SDK resource classes to the in-memory fakes
    monkeypatch.setattr(stripe, "Product", fake_stripe.Product)
    monkeypatch.setattr(stripe, "Price", fake_stripe.Price)
    monkeypatch.setattr(stripe, "PaymentLink", fake_stripe.PaymentLink)
    monkeypatch.setattr(stripe, "PaymentIntent", fake_stripe.PaymentIntent)
    return StripeGateway(config)


@pytest.fixture
def sleep(mocker):
    # tenacity waits through time.sleep
    return mocker.patch("tenacity.nap.time.sleep")
