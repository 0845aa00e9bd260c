from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from recruitpro.dependencies import get_orchestrator, get_task_runner
from recruitpro.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    PerformanceMiddleware,
    RequestLoggingMiddleware,
    validation_exception_handler,
)
from recruitpro.routers import applications, assessments, evaluations, interviews, notifications, roles
from recruitpro.utils.config import get_settings
from recruitpro.utils.logging_config import configure_for_environment, get_logger

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("RecruitPro API starting up...")

    try:
        from recruitpro.services.db import init_indexes
        await init_indexes()
        logger.info("MongoDB indexes ready")
    except Exception as e:
        logger.warning(f"Could not create MongoDB indexes, continuing without them: {e}")

    try:
        scheduled = await get_orchestrator().recover_pending()
        logger.info(f"Startup recovery sweep scheduled {scheduled} assessments")
    except Exception as e:
        logger.warning(f"Startup recovery sweep failed, run POST /api/assessments/bulk later: {e}")

    logger.info("RecruitPro API startup completed")

    yield

    logger.info("RecruitPro API shutting down...")
    left = await get_task_runner().drain(timeout=get_settings().shutdown_drain_timeout)
    if left:
        logger.warning(f"{left} background tasks abandoned at shutdown; pending assessments resume on next start")
    logger.info("RecruitPro API shutdown completed")


app = FastAPI(title="RecruitPro API", version=VERSION, lifespan=lifespan)

app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Last added runs first: the exception handler wraps everything else
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Liveness check (GET and HEAD)"""
    return {"message": "Welcome to the RecruitPro API", "version": VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "background_tasks": get_task_runner().pending,
    }


app.include_router(applications.router, prefix="/api/applications", tags=["applications"])
app.include_router(assessments.router, prefix="/api/assessments", tags=["assessments"])
app.include_router(evaluations.router, prefix="/api/evaluations", tags=["evaluations"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(roles.router, prefix="/api/roles", tags=["roles"])
app.include_router(interviews.router, prefix="/api/interviews", tags=["interviews"])

logger.info("RecruitPro API initialized successfully")
