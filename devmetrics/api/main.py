"""FastAPI application: dashboard, tag comparison and monitoring routers."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from devmetrics.api import dashboard, gitlab
from devmetrics.common.config import ConfigError
from devmetrics.common.env import load_env
from devmetrics.common.firestore import get_firestore_client, verify_connection
from devmetrics.common.logging import get_logger, log_error
from devmetrics.monitoring import router as monitoring

SERVICE_NAME = "devmetrics"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to Firestore before serving; a failed connection aborts startup."""
    load_env()
    client = get_firestore_client()
    verify_connection(client)
    logger.info("Connected to Firestore", extra={"firestore_project": client.project})
    app.state.firestore_client = client
    yield
    client.close()


app = FastAPI(title="Devmetrics Dashboard API", lifespan=lifespan)
app.include_router(dashboard.router)
app.include_router(gitlab.router)
app.include_router(monitoring.router)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Invalid request", extra={"path": request.url.path, "errors": str(exc.errors())})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ConfigError)
async def handle_config_error(request: Request, exc: ConfigError) -> JSONResponse:
    log_error(logger, "Configuration error", error=exc, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Configuration error", "details": str(exc)},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log_error(logger, "Unhandled error", error=exc, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": str(exc) or "Unknown error"},
    )


@app.get("/health")
def health(request: Request):
    client = getattr(request.app.state, "firestore_client", None)
    if client is None:
        raise HTTPException(status_code=500, detail="unhealthy")
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "firestoreProject": client.project,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "devmetrics.api.main:app",
        host="0.0.0.0",
        port=3001,
        reload=True,
    )
