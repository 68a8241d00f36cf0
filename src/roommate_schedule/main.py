'''

'''
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, dispose_db_engine
from .core.cache import create_week_cache, dispose_week_cache
from .core.events import create_event_bus, dispose_event_bus
from .common.exceptions import (
    InvalidDayNameError,
    InvalidWeekParamError,
    ScheduleStoreUnavailableError,
    UserNotFoundError,
)
from .common.logger import log
from .common.config import settings
from .api import schedules, users, weeks

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()
    create_week_cache()
    create_event_bus()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    dispose_event_bus()
    dispose_week_cache()
    if not settings.TEST_MODE:
        log.info("Application lifespan shutdown...")
        await dispose_db_engine()
    else:
        log.info("Skipping database engine disposal in TEST_MODE.")


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    "http://localhost",
    "http://localhost:3000",
]
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---

# --- Domain errors -> HTTP ---

@app.exception_handler(InvalidDayNameError)
@app.exception_handler(InvalidWeekParamError)
async def bad_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

@app.exception_handler(UserNotFoundError)
async def not_found_handler(request: Request, exc: UserNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

@app.exception_handler(ScheduleStoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: ScheduleStoreUnavailableError):
    log.warning(f"Schedule store unavailable during {exc.operation} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Schedule store is unavailable, please retry.", "operation": exc.operation},
    )

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(users.router)
app.include_router(weeks.router)
app.include_router(schedules.router)
