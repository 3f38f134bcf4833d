"""Entry point for the browser call signaling relay."""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.routes import router as api_router
from api.signaling_routes import router as signaling_router
from config.settings import get_settings
from signaling.hub import SignalingHub


@asynccontextmanager
async def lifespan(app: FastAPI):
    hub = SignalingHub(get_settings())
    await hub.start()
    app.state.hub = hub
    try:
        yield
    finally:
        await hub.stop()


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Call Signaling Relay",
    description="Relays ring, offer/answer and ICE events between two browser peers.",
    lifespan=lifespan,
)
app.include_router(api_router, prefix="/api")
app.include_router(signaling_router, prefix="/api")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Call signaling relay")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    return parser.parse_args()


def main() -> None:
    import uvicorn

    args = _parse_args()
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
