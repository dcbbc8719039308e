from decimal import Decimal
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from checkout_demo import catalog, checkout
from checkout_demo.config import load_config
from checkout_demo.errors import ValidationError
from checkout_demo.money import from_minor_units
from checkout_demo.resources import Page, StripeGateway

router = APIRouter()


@lru_cache
def get_gateway() -> StripeGateway:
    return StripeGateway(load_config())


class ProductRequest(BaseModel):
    name: str
    description: Optional[str] = None
    images: List[str] = []
    metadata: Dict[str, str] = {}


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    metadata: Optional[Dict[str, str]] = None
    active: Optional[bool] = None


class PriceRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    currency: str = "eur"
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    lookup_key: Optional[str] = None
    transfer_lookup_key: bool = False


class PaymentLinkRequest(BaseModel):
    price_ids: List[str] = []
    limit: int = 3
    quantity: int = 1
    payment_method_types: Optional[List[str]] = None
    shipping_countries: Optional[List[str]] = None
    billing_address_collection: Optional[str] = None


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "eur"
    order_id: Optional[str] = None


def _product_out(product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "images": list(product.images or []),
        "metadata": dict(product.metadata or {}),
        "active": product.active,
    }


def _price_out(price) -> dict:
    return {
        "id": price.id,
        "product": price.product,
        "unit_amount": price.unit_amount,
        "amount": str(from_minor_units(price.unit_amount, price.currency)),
        "currency": price.currency,
        "lookup_key": price.lookup_key,
    }


def _page_out(page: Page, render) -> dict:
    return {
        "data": [render(item) for item in page.items],
        "has_more": page.has_more,
        "next_cursor": page.next_cursor,
    }


@router.get("/config")
def checkout_config(gateway: StripeGateway = Depends(get_gateway)):
    return {"publishable_key": gateway.config.publishable_key}


@router.post("/products")
def create_product_api(request: ProductRequest, gateway: StripeGateway = Depends(get_gateway)):
    product = catalog.create_product(
        gateway, request.name, request.description, request.images, request.metadata
    )
    return _product_out(product)


@router.get("/products")
def list_products_api(
    limit: int = Query(10),
    starting_after: Optional[str] = None,
    gateway: StripeGateway = Depends(get_gateway),
):
    page = gateway.products.list(limit=limit, cursor=starting_after)
    return _page_out(page, _product_out)


@router.get("/products/{product_id}")
def get_product_api(product_id: str, gateway: StripeGateway = Depends(get_gateway)):
    return _product_out(gateway.products.get(product_id))


@router.patch("/products/{product_id}")
def update_product_api(product_id: str, request: ProductUpdate,
                       gateway: StripeGateway = Depends(get_gateway)):
    product = gateway.products.update(product_id, request.model_dump(exclude_none=True))
    return _product_out(product)


@router.post("/prices")
def create_price_api(request: PriceRequest, gateway: StripeGateway = Depends(get_gateway)):
    if request.product_id:
        price = catalog.create_price(
            gateway, request.product_id, request.amount, request.currency,
            request.lookup_key, request.transfer_lookup_key,
        )
    elif request.product_name:
        price = catalog.create_price_with_product(
            gateway, {"name": request.product_name}, request.amount, request.currency,
            request.lookup_key, request.transfer_lookup_key,
        )
    else:
        raise ValidationError("Either product_id or product_name is required")
    return _price_out(price)


@router.get("/prices")
def list_prices_api(
    lookup_key: Optional[str] = None,
    limit: int = Query(10),
    starting_after: Optional[str] = None,
    gateway: StripeGateway = Depends(get_gateway),
):
    filters = {"lookup_keys": [lookup_key]} if lookup_key else None
    page = gateway.prices.list(filters, limit=limit, cursor=starting_after)
    return _page_out(page, _price_out)


@router.post("/payment-links")
def create_payment_link_api(request: PaymentLinkRequest, gateway: StripeGateway = Depends(get_gateway)):
    options = {
        "quantity": request.quantity,
        "payment_method_types": request.payment_method_types,
        "shipping_countries": request.shipping_countries,
        "billing_address_collection": request.billing_address_collection,
    }
    if request.price_ids:
        link = catalog.create_payment_link(gateway, request.price_ids, **options)
    else:
        link = catalog.create_payment_link_from_prices(gateway, request.limit, **options)
    return {"id": link.id, "url": link.url}


@router.post("/payment-intents")
def create_payment_intent_api(request: PaymentRequest, gateway: StripeGateway = Depends(get_gateway)):
    intent = checkout.create_payment_intent(
        gateway, request.amount, request.currency, order_id=request.order_id
    )
    return checkout.checkout_handoff(intent, gateway.config)


@router.get("/payment-intents/{intent_id}")
def payment_intent_status_api(intent_id: str, gateway: StripeGateway = Depends(get_gateway)):
    status = checkout.payment_intent_status(gateway, intent_id)
    return {"id": intent_id, "status": status.value, "terminal": status.is_terminal}
