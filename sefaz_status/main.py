import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from sefaz_status.api import status
from sefaz_status.core.database import close_pool, database_configured
from sefaz_status.core.logging_utils import setup_logging
from sefaz_status.core.config import settings
from sefaz_status.services.monitor.constants import NO_CACHE_HEADERS
from sefaz_status.services.monitor.errors import PortalLayoutError
from sefaz_status.services.monitor.scheduler import CycleScheduler
from sefaz_status.services.monitor_service import get_monitor_cycle

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    scheduler = CycleScheduler(get_monitor_cycle(), interval=settings.CYCLE_INTERVAL_SECONDS)
    scheduler.start()
    app.state.scheduler = scheduler
    try:
        yield
    finally:
        await scheduler.stop()
        if database_configured():
            await close_pool()


app = FastAPI(title="SEFAZ Status Monitor", lifespan=lifespan)


@app.middleware("http")
async def disable_caching(request: Request, call_next):
    # Dado velho é justamente a falha que o monitor existe para detectar
    response = await call_next(request)
    response.headers.update(NO_CACHE_HEADERS)
    return response


# --- Global Exception Handlers ---

@app.exception_handler(PortalLayoutError)
async def portal_layout_handler(request: Request, exc: PortalLayoutError):
    # Quebra do scraper não pode ser confundida com queda da SEFAZ
    logger.warning(f"⚠️ Portal sem dados utilizáveis ({exc.reason}): {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": exc.reason, "detail": str(exc)},
        headers=NO_CACHE_HEADERS,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"detail": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=NO_CACHE_HEADERS,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global Error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Falha interna do monitor"},
        headers=NO_CACHE_HEADERS,
    )


app.include_router(status.router, tags=["status"])


@app.get("/")
async def root():
    return {
        "status": "ok",
        "service": "SEFAZ Status Monitor",
        "endpoints": {
            "status": "GET /status",
            "history": "GET /history?state=<UF>&documentType=<NFe|NFCe>",
            "incidents": "GET /incidents?state=<UF>&documentType=<NFe|NFCe>",
            "freshness": "GET /freshness?state=<UF>&documentType=<NFe|NFCe>",
            "stream": "GET /stream?state=<UF>",
        },
        "docs": "/docs",
    }
