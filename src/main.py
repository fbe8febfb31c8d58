"""Entry point for the SFU signaling relay service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from api.routes import router as api_router
from config.settings import get_settings
from db.base import init_db
from sfu.errors import SignalingError

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="SFU Signaling Relay",
    description="WHIP/WHEP signaling and realtime voice bridging on top of an SFU control API.",
    lifespan=lifespan,
)
app.include_router(api_router)


@app.exception_handler(SignalingError)
async def signaling_error_handler(request: Request, exc: SignalingError) -> PlainTextResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return PlainTextResponse(exc.detail, status_code=exc.status_code)


def run() -> None:
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
