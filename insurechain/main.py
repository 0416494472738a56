"""InsureChain FastAPI application."""
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from insurechain import __version__
from insurechain.api import audit, did, files, health, onchain, policy, vc
from insurechain.api.models import ErrorResponse
from insurechain.config import CORS_ORIGINS
from insurechain.core.exceptions import InsureChainError
from insurechain.core.logging import configure_logging
from insurechain.credentials import close_credential_handle, get_credential_handle
from insurechain.db.session import init_database
from insurechain.ledger import close_ledger_gateway
from insurechain.orchestrator import reset_orchestrator
from insurechain.storage import close_blob_store

configure_logging()
log = logging.getLogger("insurechain")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    log.info("Starting InsureChain service...")
    init_database()

    # The service answers requests while the credential agent comes up
    get_credential_handle().start()
    log.info("InsureChain service started")

    yield

    log.info("Shutting down InsureChain service...")
    await close_credential_handle()
    await close_blob_store()
    await close_ledger_gateway()
    reset_orchestrator()
    log.info("InsureChain service stopped")


app = FastAPI(
    title="InsureChain",
    version=__version__,
    description="Policy and claim lifecycle orchestrator",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(did.router)
app.include_router(policy.router)
app.include_router(vc.router)
app.include_router(files.router)
app.include_router(onchain.router)
app.include_router(audit.router)


@app.get("/version")
def version():
    """Return service version."""
    git_sha = os.getenv("GIT_SHA", "unknown")
    result = {"version": __version__, "git_sha": git_sha}
    if git_sha != "unknown":
        result["short_sha"] = git_sha[:7]
    return result


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log all requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)

    log.info(
        f"request_complete status={response.status_code} duration_ms={duration_ms}",
        extra={
            "route": request.url.path,
            "method": request.method,
            "status": response.status_code,
        },
    )
    return response


# -----------------------------------------------------------------------------
# Error Handlers
# -----------------------------------------------------------------------------

def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code).model_dump(),
    )


@app.exception_handler(InsureChainError)
async def insurechain_error_handler(request: Request, exc: InsureChainError):
    if exc.status_code >= 500:
        log.warning(
            f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}",
            extra={"route": request.url.path, "method": request.method, "status": exc.status_code},
        )
    return _error(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    return _error(400, f"Invalid request: {details}", "VALIDATION_ERROR")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception(
        f"Unhandled error on {request.method} {request.url.path}",
        extra={"route": request.url.path, "method": request.method, "status": 500},
    )
    return _error(500, str(exc) or type(exc).__name__, "INTERNAL_ERROR")


def run() -> None:
    import uvicorn

    from insurechain.config import SERVICE_PORT

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)


if __name__ == "__main__":
    run()
