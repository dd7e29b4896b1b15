import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from river_monitor.config.settings import get_settings
from river_monitor.api.handlers import router
from river_monitor.exceptions import ServiceNotReadyError, UpstreamError, ValidationError
from river_monitor.models.response import HealthCheckResponse
from river_monitor.services.earth_engine_session import EarthEngineSession
from river_monitor.services.weather_history import WeatherHistoryClient
from river_monitor.utils.async_helpers import run_in_executor, shutdown_executor

# Get application settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    logger.info(f"Initializing {settings.app_name}")
    logger.info(f"Batch output directory: {settings.output_dir}")

    app.state.session = EarthEngineSession(settings)
    app.state.weather_client = WeatherHistoryClient(settings)
    app.state.active_batches = set()

    if settings.gee_initialize_on_startup:
        try:
            await run_in_executor(app.state.session.initialize)
        except UpstreamError as e:
            # Keep serving; Earth Engine endpoints answer 503 until ready
            logger.error(f"Earth Engine unavailable, continuing without it: {e}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    for token in list(app.state.active_batches):
        token.cancel("server shutting down")
    shutdown_executor()


# Create FastAPI app
app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

# Include API routes
app.include_router(router)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render errors as ``{"error": ...}`` bodies."""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(ServiceNotReadyError)
async def not_ready_handler(request: Request, exc: ServiceNotReadyError):
    return JSONResponse(status_code=503, content={"error": str(exc)})


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(f"Unhandled upstream error: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request) -> HealthCheckResponse:
    """Basic health check endpoint, including Earth Engine readiness."""
    session: EarthEngineSession = request.app.state.session
    return HealthCheckResponse(
        status="healthy" if session.is_ready() else "degraded",
        service=settings.app_name,
        version=settings.app_version,
        earth_engine=session.state.value,
    )


# For development/testing only - DON'T use this in production
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting FastAPI server for development...")
    uvicorn.run(
        "river_monitor.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
