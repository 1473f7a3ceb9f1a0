"""Cortex Core - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cortex import __version__
from cortex.api import orchestrator_store
from cortex.api.routes import chat, chats, context
from cortex.api.schemas import HealthResponse
from cortex.config import API_PREFIX, CORS_ORIGINS, HOST, PORT
from cortex.errors import CortexError
from cortex.utils.logging import LOG_FORMAT, logger

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup; close the generation client on shutdown."""
    logger.info(f"Cortex Core v{__version__} listening on http://{HOST}:{PORT}{API_PREFIX}")
    yield
    if orchestrator_store.orchestrator:
        await orchestrator_store.orchestrator.gateway.close()
    logger.info("Cortex Core stopped")


app = FastAPI(
    title="Cortex Core",
    description="Context-aware conversations over a personal knowledge workspace",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chats.router, prefix=API_PREFIX)
app.include_router(context.router, prefix=API_PREFIX)
app.include_router(chat.router, prefix=API_PREFIX)


@app.exception_handler(CortexError)
async def cortex_error_handler(request: Request, exc: CortexError) -> JSONResponse:
    """Last resort for engine errors that escaped a route's own handling."""
    logger.error(f"[{request.method} {request.url.path}] {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal error"})


@app.get(f"{API_PREFIX}/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
