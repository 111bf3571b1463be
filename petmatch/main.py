# petmatch/main.py
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from petmatch import deps
from petmatch.core.config import settings
from petmatch.core.db import get_client, get_db
from petmatch.core.indexes import ensure_indexes
from petmatch.core.logs import configure_logging
from petmatch.routers import lost as lost_router
from petmatch.routers import matching as matching_router
from petmatch.routers import pets as pets_router
from petmatch.services.scheduler import IntervalTrigger, start_scan_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)

    if settings.use_mongo:
        await ensure_indexes(get_db())

    scan_task = None
    if settings.scan_enabled:
        trigger = IntervalTrigger(settings.scan_interval_seconds, run_at_start=settings.scan_run_at_start)
        scan_task = start_scan_loop(trigger, deps.get_scanner())
    else:
        logger.info("Scheduled match scan disabled")

    yield

    if scan_task:
        scan_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scan_task
    if settings.use_mongo:
        get_client().close()


app = FastAPI(lifespan=lifespan, title="MyPet Match API")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pets_router.router)       # /pets
app.include_router(lost_router.router)       # /lost
app.include_router(matching_router.router)   # /api/matching


# Health
@app.get("/health")
def health():
    return {"ok": True}
