from contextlib import asynccontextmanager

from fastapi import FastAPI

import settings
from americano.router import router as americano_router
from database import create_tables
from log_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


def create_app(init_db: bool = True) -> FastAPI:
    setup_logging(settings.LOG_DIR, settings.LOG_LEVEL)
    app = FastAPI(title="Padel Americano", lifespan=lifespan if init_db else None)
    app.include_router(americano_router)

    @app.get("/")
    async def index():
        return {"status": "ok"}

    return app


app = create_app()
