import logging
from contextlib import contextmanager

import stripe

logger = logging.getLogger(__name__)


class PaymentsError(Exception):
    """Base error for every failed call against the payment provider.

    The provider's own message is kept as ``message`` together with its
    error ``code``, HTTP status and request id when the SDK reported them.
    """

    status_code = 502
    retryable = False

    def __init__(self, message, code=None, http_status=None, request_id=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status
        self.request_id = request_id


class ValidationError(PaymentsError):
    status_code = 400


class NotFoundError(PaymentsError):
    status_code = 404


class AuthError(PaymentsError):
    status_code = 401


class RemoteRequestError(PaymentsError):
    status_code = 503
    retryable = True


def _details(exc: stripe.StripeError) -> dict:
    return {
        "code": getattr(exc, "code", None),
        "http_status": getattr(exc, "http_status", None),
        "request_id": getattr(exc, "request_id", None),
    }


def _message(exc: stripe.StripeError) -> str:
    return getattr(exc, "user_message", None) or str(exc)


@contextmanager
def translate_stripe_errors(operation: str):
    """Re-raise Stripe SDK errors as PaymentsError subclasses."""
    try:
        yield
    except (stripe.AuthenticationError, stripe.PermissionError) as exc:
        raise AuthError(_message(exc), **_details(exc)) from exc
    except stripe.InvalidRequestError as exc:
        if exc.http_status == 404 or exc.code == "resource_missing":
            raise NotFoundError(_message(exc), **_details(exc)) from exc
        raise ValidationError(_message(exc), **_details(exc)) from exc
    except stripe.IdempotencyError as exc:
        raise ValidationError(_message(exc), **_details(exc)) from exc
    except stripe.CardError as exc:
        raise ValidationError(_message(exc), **_details(exc)) from exc
    except (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError) as exc:
        logger.warning("Transient failure during %s: %s", operation, exc)
        raise RemoteRequestError(_message(exc), **_details(exc)) from exc
    except stripe.StripeError as exc:
        raise PaymentsError(_message(exc), **_details(exc)) from exc
