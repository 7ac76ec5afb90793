from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from cadence.api.challenges import router as challenges_router
from cadence.api.habits import router as habits_router
from cadence.config.settings import settings
from cadence.core.logger import setup_logger
from cadence.db.session import init_db
from cadence.errors import NotFoundError, PersistenceError, TerminalStateError, ValidationError

setup_logger(level=settings.log_level, log_file=settings.log_file, serialize=settings.log_json)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist before serving requests."""
    logger.info("Ensuring database tables exist")
    init_db()
    yield


app = FastAPI(title="Habit Cadence Scheduler", lifespan=lifespan)
app.include_router(challenges_router)
app.include_router(habits_router)


@app.exception_handler(ValidationError)
async def validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(TerminalStateError)
async def terminal_state_handler(_request: Request, exc: TerminalStateError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc), "status": exc.status})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(_request: Request, exc: PersistenceError) -> JSONResponse:
    logger.bind(operation=exc.operation).error("Returning retryable error for failed persistence operation")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Temporary storage failure, please retry."},
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
