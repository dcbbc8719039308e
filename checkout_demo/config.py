import os
import logging
from dataclasses import dataclass, field
from getpass import getpass
from pathlib import Path
from typing import Optional

import stripe
from dotenv import load_dotenv

from checkout_demo.errors import AuthError

# Force-load .env (Windows-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StripeConfig:
    """Settings shared by every resource client of one Stripe account."""

    secret_key: str = field(repr=False)
    publishable_key: Optional[str] = None
    api_version: Optional[str] = None
    request_timeout: float = 30.0
    max_retries: int = 2
    retry_base_delay: float = 0.5
    retry_max_delay: float = 8.0

    def __post_init__(self):
        if not self.secret_key or not self.secret_key.strip():
            raise AuthError("Stripe secret key is not set. Set STRIPE_SECRET_KEY in the environment or .env file.")
        if self.secret_key.startswith("pk_"):
            raise AuthError("A publishable key was supplied where a secret key is required.")

    @property
    def live_mode(self) -> bool:
        return self.secret_key.startswith(("sk_live_", "rk_live_"))

    def request_options(self) -> dict:
        options = {"api_key": self.secret_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        return options


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}. Check your .env file.")


def load_config(secret_key: Optional[str] = None, prompt: bool = False) -> StripeConfig:
    key = secret_key or os.getenv("STRIPE_SECRET_KEY")
    if not key and prompt:
        key = getpass("Stripe secret key: ")

    config = StripeConfig(
        secret_key=key or "",
        publishable_key=os.getenv("STRIPE_PUBLISHABLE_KEY"),
        api_version=os.getenv("STRIPE_API_VERSION") or None,
        request_timeout=_env_number("STRIPE_TIMEOUT", "30", float),
        max_retries=_env_number("STRIPE_MAX_RETRIES", "2", int),
    )
    logger.info("Loaded Stripe config (live_mode=%s)", config.live_mode)
    return config


def configure_transport(config: StripeConfig) -> None:
    # The SDK only exposes its HTTP client process-wide; the API key stays per request.
    stripe.default_http_client = stripe.RequestsClient(timeout=config.request_timeout)
