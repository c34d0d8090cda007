# clipfetch/transport/http_app.py
"""
HTTP transport for the resolver and the relay.

Endpoints:
1. Public API: ``POST /api/download`` (resolve), ``GET /api/proxy`` (relay)
2. Public probes: ``/health``, ``/api/health``
3. Internal: ``/metrics`` (when enabled)
4. Dev-only: ``/api/test``
5. Static frontend at ``/`` when ``static_dir`` exists

Handlers only translate HTTP to ``Resolver``/``MediaRelay`` calls and back;
every decision lives in the core.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.background import BackgroundTask

from clipfetch.config import settings
from clipfetch.core.domain import ResolutionRequest
from clipfetch.core.errors import ClipfetchError
from clipfetch.core.resolver import Resolver, build_resolver
from clipfetch.infra.http_client import close_all_sessions
from clipfetch.infra.logging_config import setup_logging, get_logger
from clipfetch.infra.metrics import get_metrics_collector
from clipfetch.infra.relay import MediaRelay
from clipfetch.transport.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    SecurityHeadersMiddleware,
)
from clipfetch.transport.schemas import DownloadIn, ErrorOut, HealthOut
from clipfetch.transport.security import cors_headers, require_dev_environment

# Initialize logging first
setup_logging(
    level=settings.log_level,
    use_json=settings.is_production
)

logger = get_logger(__name__)

SAMPLE_POST_URL = "https://www.tiktok.com/@zachking/video/7139337044015959342"


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_resolver(request: Request) -> Resolver:
    """Get resolver from app state"""
    return request.app.state.resolver


def get_relay(request: Request) -> MediaRelay:
    """Get relay from app state"""
    return request.app.state.relay


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


# ============================================================================
# LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Application lifecycle: startup and shutdown"""

    # STARTUP
    logger.info(
        f"Starting clipfetch: env={settings.app_env}, port={settings.port}, "
        f"providers={fastapi_app.state.resolver.provider_names}, "
        f"max_size={settings.max_video_size_mb}MB"
    )
    logger.info("Endpoints: POST /api/download, GET /api/proxy, GET /api/health")

    yield

    # SHUTDOWN
    await close_all_sessions()
    logger.info("Shutdown complete")


# ============================================================================
# CREATE APP
# ============================================================================

app = FastAPI(
    title="clipfetch",
    description="Short-video link resolver with provider fallback and media relay",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.state.resolver = build_resolver(settings)
app.state.relay = MediaRelay()

# Outermost last: RequestID → Logging → ErrorHandling → SecurityHeaders → app
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware, enabled=settings.enable_request_logging)
app.add_middleware(RequestIDMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(ClipfetchError)
async def clipfetch_error_handler(request: Request, exc: ClipfetchError):
    """Typed resolver/relay errors carry their own status and message"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (404, 405, ...) with appropriate logging"""
    if exc.status_code >= 500:
        logger.error(f"Server error: {exc.detail}", extra={"status_code": exc.status_code})

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON body or wrong field types"""
    logger.info(f"Rejected request body: {exc.errors()[:3]}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body"},
    )


# ============================================================================
# PUBLIC API
# ============================================================================

@app.options("/api/download", include_in_schema=False)
def download_preflight():
    """CORS preflight - answered without touching any provider"""
    return Response(status_code=200, headers=cors_headers("POST, OPTIONS"))


@app.post("/api/download", responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}})
async def download(
    payload: DownloadIn,
    request: Request,
    resolver: Resolver = Depends(get_resolver),
):
    """
    Resolve a post URL to direct media links.

    Body: ``{"url": "...", "quality": "sd|hd|fhd|4k", "format": "mp4"}``
    """
    resolution = ResolutionRequest.create(payload.url, payload.quality, payload.format)
    result = await resolver.resolve(resolution, request_id=_request_id(request))
    return result.to_dict()


@app.options("/api/proxy", include_in_schema=False)
def proxy_preflight():
    """CORS preflight - answered without any outbound fetch"""
    return Response(status_code=200, headers=cors_headers("GET, OPTIONS"))


@app.get("/api/proxy", responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}})
async def proxy(
    request: Request,
    url: str | None = None,
    play: str | None = None,
    relay: MediaRelay = Depends(get_relay),
):
    """
    Stream a previously resolved media URL to the browser.

    ``play=true`` serves it inline (video tag); anything else is a download.
    """
    stream = await relay.open(url, inline=(play == "true"))

    return StreamingResponse(
        stream.iter_bytes(),
        status_code=200,
        media_type=stream.content_type,
        headers=stream.headers,
        # Runs after the body ends or the client disconnects, iterated or not
        background=BackgroundTask(stream.close),
    )


def _method_not_allowed(allowed: str):
    def handler():
        raise HTTPException(status_code=405, detail="Method not allowed", headers={"Allow": allowed})
    return handler


# Explicit so the answer stays 405 even when the static mount at "/" would match
app.add_api_route(
    "/api/download",
    _method_not_allowed("POST, OPTIONS"),
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
app.add_api_route(
    "/api/proxy",
    _method_not_allowed("GET, OPTIONS"),
    methods=["POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)


# ============================================================================
# HEALTH / MONITORING
# ============================================================================

@app.get("/health")
def health():
    """
    Basic health check - PUBLIC endpoint.
    Used by load balancers, monitoring, etc.
    """
    return {"status": "healthy"}


@app.get("/api/health", response_model=HealthOut)
def api_health(resolver: Resolver = Depends(get_resolver)):
    """Server status plus the provider chain, in the order it is tried"""
    return HealthOut(status="Server is running!", availableMethods=resolver.provider_names)


@app.get("/metrics")
def metrics():
    """In-process counters and latency histograms"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Not found")
    return get_metrics_collector().get_metrics()


# ============================================================================
# DEV-ONLY ENDPOINTS
# ============================================================================

@app.get("/api/test", dependencies=[Depends(require_dev_environment())])
async def api_test(request: Request, resolver: Resolver = Depends(get_resolver)):
    """
    Smoke-test the provider chain against a known public post - DEV ONLY.
    Returns 404 outside dev (endpoint hidden).
    """
    resolution = ResolutionRequest.create(SAMPLE_POST_URL)
    try:
        result = await resolver.resolve(resolution, request_id=_request_id(request))
    except ClipfetchError as e:
        return {"message": "API test failed", "testUrl": SAMPLE_POST_URL, "error": e.detail}

    return {"message": "API is working!", "testUrl": SAMPLE_POST_URL, "result": result.to_dict()}


# ============================================================================
# STATIC FRONTEND (mounted last so API routes win)
# ============================================================================

if settings.static_dir and Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    logger.info(f"Serving static files from {settings.static_dir}")


def main():
    import uvicorn

    uvicorn.run(
        "clipfetch.transport.http_app:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
        access_log=not settings.is_production,  # Disable in prod (use middleware logging)
        server_header=False,
        date_header=False,
    )


if __name__ == "__main__":
    main()
