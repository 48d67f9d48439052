import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .middleware import RateLimitMiddleware, SlidingWindowRateLimiter, install_access_log
from .routes import cache, correlation, stocks
from .services.price_service import PriceService, build_price_service

logger = logging.getLogger(__name__)

NOT_FOUND_SUGGESTIONS = [
    "Check the URL and try again",
    "Refer to the API documentation at /docs for available endpoints",
]


def _stats_worker(service: PriceService, interval: float, stop: threading.Event) -> None:
    while not stop.wait(interval):
        try:
            service.log_stats()
        except Exception as exc:  # pragma: no cover - logging must not kill the thread
            logger.warning("Cache stats tick failed: %s", exc)


def create_app(settings: Optional[Settings] = None, service: Optional[PriceService] = None) -> FastAPI:
    settings = settings or get_settings()
    service = service or build_price_service(settings)

    app = FastAPI(title="Stock Price Aggregation API", version="0.1.0", docs_url="/docs")
    app.state.price_service = service
    app.state.stats_stop = threading.Event()
    app.state.stats_thread = None

    if settings.rate_limit_max > 0:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=SlidingWindowRateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds),
        )
    install_access_log(app)

    cors_origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[cors_origins] if cors_origins != "*" else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _start_cache() -> None:
        service.cache.start()
        logger.info("Cache service initialized")
        interval = settings.stats_interval_seconds
        if interval <= 0:
            return
        app.state.stats_stop.clear()
        thread = threading.Thread(
            target=_stats_worker,
            args=(service, interval, app.state.stats_stop),
            name="cache-stats",
            daemon=True,
        )
        thread.start()
        app.state.stats_thread = thread

    @app.on_event("shutdown")
    async def _stop_cache() -> None:
        app.state.stats_stop.set()
        if app.state.stats_thread:
            app.state.stats_thread.join(timeout=5)
            app.state.stats_thread = None
        service.cache.stop()

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Only unmatched routes get the hint body; route-raised 404s keep their detail.
        if exc.status_code != 404 or "endpoint" in request.scope:
            return await http_exception_handler(request, exc)
        return JSONResponse(
            status_code=404,
            content={"detail": f"Resource not found: {request.url.path}", "suggestions": NOT_FOUND_SUGGESTIONS},
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": f"Internal server error: {exc}"})

    @app.get("/health", tags=["health"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    app.include_router(stocks.router)
    app.include_router(correlation.router)
    app.include_router(cache.router)
    return app
