import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkout_demo.config import configure_transport, load_config
from checkout_demo.errors import AuthError, PaymentsError
from checkout_demo.routes import router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        configure_transport(load_config())
    except AuthError:
        logger.warning("STRIPE_SECRET_KEY is not set; requests will fail until it is")
    yield


app = FastAPI(title="Stripe Checkout Demo", lifespan=lifespan)

app.include_router(router)


@app.exception_handler(PaymentsError)
async def payments_error_handler(request: Request, exc: PaymentsError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )
