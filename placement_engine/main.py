"""
Placement Engine - Main Application

FastAPI backend with:
- MongoDB record store (transactions + optimistic version checks)
- Admission allocation: applications, published admissions, selection cascade
- Job matching with candidate notifications
- JWT authentication (tokens issued by the identity provider)

Run: uvicorn placement_engine.main:app --reload
"""

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from placement_engine.api.routes import api_router
from placement_engine.core.config import get_settings
from placement_engine.core.exceptions import (
    ConflictRetryable,
    ConstraintViolation,
    EngineError,
    NotFound,
    OperationTimeout,
    PermissionDenied,
    StoreUnavailable,
    Unqualified,
)
from placement_engine.core.logger import get_logger
from placement_engine.db import get_record_store
from placement_engine.db.store import RecordStore
from placement_engine.schemas.schemas import ErrorResponse

settings = get_settings()
logger = get_logger()

# Engine error -> HTTP status
STATUS_CODES = {
    ConstraintViolation: 400,
    Unqualified: 400,
    PermissionDenied: 403,
    NotFound: 404,
    ConflictRetryable: 409,
    StoreUnavailable: 503,
    OperationTimeout: 504,
}

# Create FastAPI app
app = FastAPI(
    title="Placement Engine",
    description="""
    Admission allocation and job matching.

    ## Features
    - **Students**: Transcript upload, course applications, admission selection
    - **Institutions**: Faculties, courses, admission publication with waiting lists
    - **Companies**: Job posting and qualified-candidate ranking
    - **Notifications**: Job-match inbox
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


def status_code_for(error: EngineError) -> int:
    for error_type, code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return code
    return 500


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    code = status_code_for(exc)
    logger.record_error(exc.kind)
    if code >= 500:
        logger.error("Request failed", path=request.url.path, kind=exc.kind, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, kind=exc.kind, error=exc.message)
    body = ErrorResponse(error=exc.kind, detail=exc.message)
    return JSONResponse(status_code=code, content=body.model_dump())


# Startup event
@app.on_event("startup")
def startup_event():
    """Initialize MongoDB indexes on startup."""
    if settings.record_store != "mongo":
        logger.info("Using in-memory record store")
        return

    from placement_engine.db.mongodb import init_mongo_indexes
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.warning("MongoDB index initialization failed", error=str(e))


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Placement Engine"}


@app.get("/health", tags=["Health"])
def health_check(store: RecordStore = Depends(get_record_store)):
    """Detailed health check."""
    return {
        "status": "healthy",
        "record_store": settings.record_store,
        "store": "connected" if store.ping() else "disconnected",
        "metrics": logger.get_metrics(),
    }
