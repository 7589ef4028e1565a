import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from genjobs.config import settings
from genjobs.api import auth, credits, jobs
from genjobs.api.auth import require_bearer_token
from genjobs.services.storage import job_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logging.getLogger("genjobs").setLevel(settings.log_level.upper())
    logger.info(
        "Starting with %d credits, %s generator, %.1fs processing delay",
        job_store.get_credits(), settings.generator_backend, job_store.processing_delay,
    )
    yield
    # Pending job tasks belong to this event loop
    job_store.shutdown()
    close = getattr(job_store.generator, "close", None)
    if close is not None:
        await close()


app = FastAPI(
    title="Generation Jobs API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed parameters are reported like missing ones
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# API routes
protected = [Depends(require_bearer_token)]
app.include_router(credits.router, prefix="/api", tags=["credits"], dependencies=protected)
app.include_router(jobs.router, prefix="/api", tags=["jobs"], dependencies=protected)
app.include_router(auth.router, prefix="/api/authentication", tags=["auth"])


@app.get("/api/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
