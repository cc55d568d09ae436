# storefront/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import close_pool
from .errors import CheckoutError
from .logger import get_logger
from .routes import checkout, orders
from .settings import settings

logger = get_logger("main")

app = FastAPI(title="Storefront Checkout API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checkout.router)
app.include_router(orders.router)


@app.exception_handler(CheckoutError)
async def _checkout_error(request: Request, exc: CheckoutError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/")
def root():
    return {"message": "Storefront checkout API is running"}


@app.on_event("startup")
async def _startup():
    logger.info("storefront checkout API starting (currency default %s)", settings.default_currency)


@app.on_event("shutdown")
async def _shutdown_pool():
    await close_pool()
