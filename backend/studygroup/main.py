from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from studygroup.core.config import settings
from studygroup.core.logging import setup_logging
from studygroup.core.exceptions import (
    StudyGroupError,
    global_exception_handler,
    http_exception_handler,
    study_group_exception_handler,
    validation_exception_handler,
)
from studygroup.db.init_db import seed_demo_data
from studygroup.services.assistant_service import SingleFlight
from studygroup.storage.factory import build_store

# Setup Logging
setup_logging()
logger = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the configured store for the lifetime of the app.
    """
    store = build_store(settings)
    await store.init()
    if settings.SEED_DEMO_DATA:
        await seed_demo_data(store)

    app.state.store = store
    app.state.flights = SingleFlight()
    logger.info("startup", project=settings.PROJECT_NAME, storage=store.name)
    try:
        yield
    finally:
        await store.close()
        logger.info("shutdown")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Study group matchmaking with group chat and an AI study assistant",
    lifespan=lifespan,
    docs_url=f"{settings.API_PREFIX}/docs",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
)

# Middleware: CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handlers
app.add_exception_handler(StudyGroupError, study_group_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Health Check
@app.get("/health", tags=["system"])
@app.get(f"{settings.API_PREFIX}/health", tags=["system"])
async def health_check():
    """
    Public health check endpoint for load balancers.
    """
    store = getattr(app.state, "store", None)
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "storage": store.name if store else settings.STORAGE_BACKEND,
    }


from studygroup.api.v1 import auth, students, groups, messages, suggestions

app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(students.router, prefix=f"{settings.API_PREFIX}/students", tags=["students"])
app.include_router(groups.router, prefix=f"{settings.API_PREFIX}/groups", tags=["groups"])
app.include_router(messages.router, prefix=f"{settings.API_PREFIX}/groups", tags=["messages"])
app.include_router(suggestions.router, prefix=f"{settings.API_PREFIX}/suggestions", tags=["ai"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("studygroup.main:app", host="0.0.0.0", port=8000, reload=True)
