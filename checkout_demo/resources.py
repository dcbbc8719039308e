import uuid
import logging
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

import stripe
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from checkout_demo.config import StripeConfig
from checkout_demo.errors import RemoteRequestError, ValidationError, translate_stripe_errors

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class Page(NamedTuple):
    items: List[Any]
    has_more: bool
    next_cursor: Optional[str]


def _is_retryable(exc: BaseException) -> bool:
    return getattr(exc, "retryable", False)


class ResourceClient:
    """Create/list/get/update access to one Stripe resource collection.

    ``resource`` is a Stripe SDK resource class such as ``stripe.Product``.
    Every request carries the options of ``config``; nothing is set on the
    ``stripe`` module itself.
    """

    def __init__(self, resource, config: StripeConfig):
        self.resource = resource
        self.config = config
        self.name = getattr(resource, "OBJECT_NAME", resource.__name__)

    def __repr__(self):
        return f"<ResourceClient {self.name}>"

    def _log_retry(self, operation: str):
        def before_sleep(retry_state):
            logger.warning(
                "%s.%s attempt %d/%d failed (%s), retrying in %.1fs",
                self.name, operation, retry_state.attempt_number, self.config.max_retries + 1,
                retry_state.outcome.exception(), retry_state.next_action.sleep,
            )
        return before_sleep

    def _invoke(self, operation: str, method, *args, **params):
        with translate_stripe_errors(f"{self.name}.{operation}"):
            return method(*args, **params)

    def _call(self, operation: str, method, *args, **params):
        params.update(self.config.request_options())
        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(multiplier=self.config.retry_base_delay, max=self.config.retry_max_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._log_retry(operation),
            reraise=True,
        )
        try:
            return retrying(self._invoke, operation, method, *args, **params)
        except RemoteRequestError:
            logger.error("%s.%s failed after %d attempt(s)", self.name, operation, self.config.max_retries + 1)
            raise

    def create(self, payload: Dict[str, Any], idempotency_key: Optional[str] = None):
        # A fixed key per logical create keeps retries from duplicating the resource
        key = idempotency_key or str(uuid.uuid4())
        created = self._call("create", self.resource.create, idempotency_key=key, **payload)
        logger.info("Created %s %s", self.name, created.id)
        return created

    def list(self, filters: Optional[Dict[str, Any]] = None, limit: int = 10,
             cursor: Optional[str] = None) -> Page:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}")

        params = dict(filters or {})
        params["limit"] = limit
        if cursor:
            params["starting_after"] = cursor

        logger.debug("Listing %s (limit=%d, cursor=%s)", self.name, limit, cursor)
        result = self._call("list", self.resource.list, **params)
        items = list(result.data)
        has_more = bool(result.has_more)
        next_cursor = items[-1].id if has_more and items else None
        return Page(items, has_more, next_cursor)

    def list_all(self, filters: Optional[Dict[str, Any]] = None, page_size: int = 10) -> Iterator[Any]:
        cursor = None
        while True:
            page = self.list(filters, limit=page_size, cursor=cursor)
            yield from page.items
            if not page.has_more or page.next_cursor is None:
                return
            cursor = page.next_cursor

    def get(self, resource_id: str, expand: Optional[List[str]] = None):
        if not resource_id:
            raise ValidationError(f"A {self.name} id is required")
        params = {"expand": expand} if expand else {}
        return self._call("get", self.resource.retrieve, resource_id, **params)

    def update(self, resource_id: str, patch: Dict[str, Any]):
        if not patch:
            raise ValidationError(f"Nothing to update on {self.name} {resource_id}")
        updated = self._call("update", self.resource.modify, resource_id, **patch)
        logger.info("Updated %s %s (%s)", self.name, resource_id, ", ".join(sorted(patch)))
        return updated


class StripeGateway:
    """The four resource collections the demo works with, sharing one config."""

    def __init__(self, config: StripeConfig):
        self.config = config
        self.products = ResourceClient(stripe.Product, config)
        self.prices = ResourceClient(stripe.Price, config)
        self.payment_links = ResourceClient(stripe.PaymentLink, config)
        self.payment_intents = ResourceClient(stripe.PaymentIntent, config)
