"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import health, import_control, sync_logs
from api.dependencies import get_orchestrator
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.exceptions import PipelineError, StorageUnavailableError
from core.logging import setup_logging
from ingestion.scheduler import ImportScheduler
from schemas.api import ErrorResponse
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Mafia Insight Import API",
    description="Import control and status for the gomafia.pro mirror",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

scheduler = None


# Include routers
app.include_router(health.router)
app.include_router(import_control.router)
app.include_router(sync_logs.router)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    """Pipeline errors raised inside a request (checkpoint reads, storage outages)"""
    request_id = getattr(request.state, "request_id", "-")
    logger.error(f"[{request_id}] {exc.code}: {exc.message}", extra={"error_context": exc.to_dict()})
    status_code = 503 if isinstance(exc, StorageUnavailableError) else 500
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=exc.code, detail=exc.message).model_dump(mode="json"),
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    global scheduler
    logger.info("Starting Mafia Insight Import API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    
    if settings.SCHEDULER_ENABLED:
        scheduler = ImportScheduler(get_orchestrator())
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Mafia Insight Import API")
    if scheduler is not None:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Mafia Insight Import API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "import": "/import/status",
            "history": "/sync-logs"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)
