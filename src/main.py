from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from src.core.config import settings
from src.core.database import Base, engine

import src.models  # Ensure models are registered

from src.routes.address import address_router
from src.routes.cart import cart_router
from src.routes.inventory import inventory_router
from src.routes.orders import order_router, wholesale_router
from src.routes.returns import returns_router
from src.routes.seller_orders import seller_order_router


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- STARTUP ----
    if settings.ENVIRONMENT == "development":
        Base.metadata.create_all(bind=engine)

    yield

    # ---- SHUTDOWN ----
    engine.dispose()

app = FastAPI(
    title="Oblito Commerce API",
    version="1.0.0",
    lifespan=lifespan
)

API_PREFIX = "/api/v1"

app.include_router(address_router, prefix=API_PREFIX)
app.include_router(cart_router, prefix=API_PREFIX)
app.include_router(order_router, prefix=API_PREFIX)
app.include_router(wholesale_router, prefix=API_PREFIX)
app.include_router(seller_order_router, prefix=API_PREFIX)
app.include_router(returns_router, prefix=API_PREFIX)
app.include_router(inventory_router, prefix=API_PREFIX)


@app.get(f"{API_PREFIX}/")
def root():
    return {"message": "Oblito Commerce API is running"}
