from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bookflow.api.v1.bookings import router as bookings_router
from bookflow.core.config import settings
from bookflow.core.logging import configure_logging
from bookflow.wiring.dependencies import close_container, get_container

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    get_container()
    yield
    # stops every poller still running so nothing outlives the process
    await close_container()


app = FastAPI(title="Booking Payment Workflow", version="1.0.0", lifespan=lifespan)

app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
