import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.api.notifications import router as notifications_router
from app.api.transfers import router as transfers_router
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.services.object_storage import ensure_storage_bucket

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    try:
        ensure_storage_bucket()
    except Exception:
        logger.exception("Failed to ensure storage bucket on startup.")
    yield


configure_logging()
app = FastAPI(title="File Transfers API", lifespan=lifespan)
register_error_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(transfers_router)
app.include_router(notifications_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
