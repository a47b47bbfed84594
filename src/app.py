import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from src.scheduler import run_blacklist_cleanup

logging.basicConfig(level=logging.INFO)

BLACKLIST_CLEANUP_INTERVAL_MINUTES = int(
    os.environ.get("ROADSIDE_BLACKLIST_CLEANUP_INTERVAL_MINUTES", "60")
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_blacklist_cleanup,
        "interval",
        minutes=BLACKLIST_CLEANUP_INTERVAL_MINUTES,
        id="run_blacklist_cleanup",
    )
    scheduler.start()
    yield
    scheduler.shutdown()


app = FastAPI(title="Roadside", lifespan=lifespan)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
