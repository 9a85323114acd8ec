import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quickurl.config import settings
from quickurl.database.connection import init_db
from quickurl.exceptions import QuickURLError
from quickurl.logging_config import setup_logging
from quickurl.middleware import LoggingMiddleware
from quickurl.schemas.url import HealthResponse
from quickurl.api import urls, redirect

logger = logging.getLogger("quickurl")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema before serving requests."""
    logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    init_db()
    yield
    logger.info("%s stopped", settings.app_name)


setup_logging(level=settings.log_level, log_file=settings.log_file, json_format=settings.log_json)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener with expiring links and click counting",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)


######## Error responses: every failure is {"error": "<message>"}

@app.exception_handler(QuickURLError)
async def quickurl_error_handler(request: Request, exc: QuickURLError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {details}"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("%s %s failed with an unexpected error", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/", response_model=HealthResponse)
@app.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint"""
    return HealthResponse(status="healthy", service=settings.app_name, version=settings.app_version)


######## Include routers (redirect last: /{token} matches any single segment)
app.include_router(urls.router)
app.include_router(redirect.router)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
