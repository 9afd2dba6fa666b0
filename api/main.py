import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import db, settings
from core.errors import (
    CardinalityError,
    ConstraintViolationError,
    DataAccessError,
    DatabaseConnectionError,
)
from students import router as students_router
from users import router as users_router

logging.basicConfig(level=settings.log_level())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Build the executor once per process; a missing connection string stops startup here.
    db.init_executor()
    try:
        yield
    finally:
        db.close_executor()


app = FastAPI(lifespan=lifespan)

# Allow the configured browser origins (local frontend dev server by default).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(students_router.router, tags=["students"])
app.include_router(users_router.router, tags=["users"])


@app.exception_handler(DataAccessError)
async def data_access_error_handler(_: Request, exc: DataAccessError) -> JSONResponse:
    if isinstance(exc, ConstraintViolationError):
        status_code, detail = status.HTTP_409_CONFLICT, "Request conflicts with existing data."
    elif isinstance(exc, DatabaseConnectionError):
        status_code, detail = status.HTTP_503_SERVICE_UNAVAILABLE, "Database is unavailable."
    elif isinstance(exc, CardinalityError):
        status_code, detail = status.HTTP_500_INTERNAL_SERVER_ERROR, "Query matched more rows than expected."
    else:
        status_code, detail = status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error."

    logger.error("data_access_error code=%s status=%s error=%s", exc.error_code, status_code, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": detail, "error_code": exc.error_code})


@app.get("/health")
async def health() -> dict:
    database_ok = await db.executor().test_connection()
    return {"status": "ok" if database_ok else "degraded", "database": database_ok}


@app.get("/")
def root() -> dict:
    return {"message": "data-access api"}
