"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import bookings_router, health_router, reminders_router
from core.config import API_VERSION, get_settings
from core.database import BookingStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: make sure the schema (including request log tables) exists
    settings = get_settings()
    BookingStore(settings.db_path).init_schema()
    logger.info("Using database at %s", settings.db_path)

    yield


app = FastAPI(
    title="Office Hours Booking API",
    description="Confirmation, cancellation, and reminder flows for office-hours bookings",
    version=API_VERSION,
    debug=get_settings().api_debug,
    lifespan=lifespan,
)

# The booking page is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with standard error format."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


@app.options("/{path:path}", include_in_schema=False)
async def preflight(path: str):
    """Answer bare OPTIONS requests that the CORS middleware does not treat as preflight."""
    return PlainTextResponse("ok", headers=CORS_HEADERS)


# Include routers
app.include_router(health_router)
app.include_router(bookings_router)
app.include_router(reminders_router)


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
