import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from sqlalchemy import text

from .config import settings
from .database import SessionLocal, engine
from .errors import install_error_handlers
from .models import Base
from .redis_client import redis_client
from .routers import bookings, slots
from .services.lock_sweeper import lock_sweeper_loop
from .services.reminder_checker import reminder_checker_loop

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("turfbook.audit")


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    tasks: list[asyncio.Task] = []
    if settings.background_jobs_enabled:
        tasks.append(asyncio.create_task(lock_sweeper_loop()))
        tasks.append(asyncio.create_task(reminder_checker_loop()))

    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


app = FastAPI(title="Turf Booking API", lifespan=lifespan)
install_error_handlers(app)


# one JSON line per request; never blocks the request
@app.middleware("http")
async def audit_middleware(request: Request, call_next):
    start_ts = time.time()

    response = await call_next(request)

    record = {
        "ts": int(start_ts),
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "user": request.headers.get("X-User-Id"),
        "duration_ms": int((time.time() - start_ts) * 1000),
    }
    audit_logger.info(json.dumps(record, ensure_ascii=False))

    return response


app.include_router(slots.router)
app.include_router(bookings.router)


@app.get("/health")
def health():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    finally:
        db.close()
    return {"db": True, "redis": redis_client.ping()}
