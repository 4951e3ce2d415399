"""
FastAPI Application
==================

Main FastAPI application serving the image endpoint and the editor API.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Dict, Tuple, Type

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from openimage.config.settings import get_settings
from openimage.config.logging import get_logger
from openimage.api.routes import editor, health, render
from openimage.core.rendering.client_rasterizer import ClientCaptureError, close_browser_pool
from openimage.core.rendering.html_generator import HTMLGenerationError
from openimage.core.rendering.remote_rasterizer import RasterizationError, RenderTimeout
from openimage.core.scene.elements import InvalidKind, InvalidStyle
from openimage.core.scene.scene import IndexOutOfRange, MalformedScene
from openimage.core.scene.store import StoreError
from openimage.models.schemas import ErrorResponse

logger = get_logger(__name__)

# Domain error -> (HTTP status, error code)
ERROR_STATUS: Dict[Type[Exception], Tuple[int, str]] = {
    InvalidKind: (422, "INVALID_KIND"),
    InvalidStyle: (422, "INVALID_STYLE"),
    IndexOutOfRange: (404, "INDEX_OUT_OF_RANGE"),
    MalformedScene: (400, "MALFORMED_INPUT"),
    RenderTimeout: (504, "RENDER_TIMEOUT"),
    RasterizationError: (500, "RENDER_FAILED"),
    ClientCaptureError: (500, "CAPTURE_FAILED"),
    HTMLGenerationError: (500, "HTML_GENERATION_FAILED"),
    StoreError: (500, "STORE_FAILED"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting FastAPI application", environment=settings.environment)

    try:
        yield
    finally:
        logger.info("Shutting down FastAPI application")

        # Browsers are started lazily by the first export
        try:
            await close_browser_pool()
            logger.info("Browser pool closed")
        except Exception as e:
            logger.error("Error closing browser pool", error=str(e))


# Create FastAPI app
settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    description="Compose text, boxes and images on a fixed canvas and render them to images",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_hosts,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(render.router)
app.include_router(editor.router)
app.include_router(health.router)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)  # type: ignore
    response.headers["X-Request-ID"] = request_id  # type: ignore

    return response  # type: ignore


# Exception handlers
@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom HTTP exception handler with structured error response."""
    error_response = ErrorResponse(
        error=str(exc.detail),
        error_code=str(exc.status_code),
        details=None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))


def error_status_for(exc: Exception) -> Tuple[int, str]:
    """Most specific mapping along the exception's MRO."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500, "INTERNAL_ERROR"


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map scene and rendering errors to structured responses."""
    status_code, error_code = error_status_for(exc)

    error_response = ErrorResponse(
        error=str(exc),
        error_code=error_code,
        details={"exception": type(exc).__name__} if settings.debug else None,
        request_id=getattr(request.state, "request_id", None),
    )

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Request failed",
        error_code=error_code,
        error_message=str(exc),
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))


for _exc_class in ERROR_STATUS:
    app.add_exception_handler(_exc_class, domain_exception_handler)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """General exception handler for unexpected errors."""
    error_response = ErrorResponse(
        error="Internal server error",
        error_code="INTERNAL_ERROR",
        details={"exception": str(exc)} if settings.debug else None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=error_response.request_id,
        exc_info=True,
    )

    return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))


# Root endpoint
@app.get("/", tags=["General"])
async def root() -> Dict[str, Any]:
    """
    Root endpoint with basic API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs_url": "/docs" if settings.enable_docs else None,
        "health_check": "/health",
        "endpoints": {
            "render_image": "GET /api/image?data=",
            "scene": "GET /api/editor/scene",
            "add_element": "POST /api/editor/elements",
            "remove_element": "DELETE /api/editor/elements/{index}",
            "select_element": "POST /api/editor/elements/{index}/select",
            "drag_element": "POST /api/editor/elements/{index}/drag",
            "update_style": "PATCH /api/editor/elements/{index}/style",
            "set_position": "PUT /api/editor/selection/position",
            "canvas": "GET /api/editor/canvas",
            "export": "POST /api/editor/export",
            "generate": "POST /api/editor/generate",
        },
    }


# Development server runner
def run_development_server() -> None:
    """Run development server with auto-reload."""
    uvicorn.run(
        "openimage.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


def create_app() -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.
    Used by integration tests and external deployment scripts.

    Returns:
        FastAPI application instance
    """
    return app


if __name__ == "__main__":
    run_development_server()
