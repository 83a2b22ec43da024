# marketplace/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from marketplace.api.routers import group_orders, health, loyalty, orders, scheduled_orders, vendors
from marketplace.data.database import Base, engine
from marketplace.utils.logging import get_logger
from marketplace.utils.retry import db_retry

# IMPORT WSZYSTKICH MODELI PRZED CREATE_ALL
import marketplace.data.models  # noqa: F401

logger = get_logger(__name__)


@db_retry()
def init_db():
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Marketplace Orders Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(vendors.router)
    app.include_router(orders.router)
    app.include_router(loyalty.router)
    app.include_router(scheduled_orders.router)
    app.include_router(group_orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
