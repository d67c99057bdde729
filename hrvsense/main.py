"""Facade to start the FastAPI server with settings from env / config file."""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from hrvsense.app import create_app
from hrvsense.config import load_settings


def run() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_level=settings.log_level)
    server = uvicorn.Server(config)
    asyncio.run(server.serve())


if __name__ == "__main__":
    run()
