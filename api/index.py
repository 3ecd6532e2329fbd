import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from travelbuddy.cleanup import RetentionSweeper
from travelbuddy.db import SessionLocal
from travelbuddy.errors import ServiceError
from travelbuddy.routes import buddies, chat, dangerous_places, journeys, users
from travelbuddy.settings import get_settings


logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("travelbuddy.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    sweeper_task = None
    if settings.CLEANUP_ENABLED:
        sweeper = RetentionSweeper(
            SessionLocal,
            retention_days=settings.RETENTION_DAYS,
            interval_seconds=settings.CLEANUP_INTERVAL_SECONDS,
        )
        sweeper_task = asyncio.create_task(sweeper.run_forever())
    yield
    if sweeper_task is not None:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task


app = FastAPI(title="Travel Buddy API", version="1.0.0", lifespan=lifespan)


@app.get("/")
def root():
    return {"ok": True}


@app.get("/health")
def health():
    return {"ok": True}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = {"detail": {"error": {"code": exc.code, "message": exc.message}}}
    return JSONResponse(status_code=exc.http_status, content=body)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = {
        "detail": {
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
            }
        }
    }
    return JSONResponse(status_code=500, content=body)


app.include_router(users.router)
app.include_router(buddies.router)
app.include_router(journeys.router)
app.include_router(chat.router)
app.include_router(dangerous_places.router)
