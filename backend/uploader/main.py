"""Image Uploader Backend Application.

Entry point for the image uploader service: the upload receiver that stores
images on local disk, and the session-scoped image selector that a browser
widget drives (drop, select up to five, upload, crop preview).

Modules:
    - receiver: ``POST /api/upload`` single-file endpoint
    - selector: image list, selection, upload orchestration, crop workspace
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from uploader.config import get_config
from uploader.receiver.router import router as receiver_router
from uploader.selector.router import router as selector_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# httpx/httpcore log every connection the selector opens to the receiver.
for _noisy in (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "python_multipart",
    "multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    config = get_config()

    # `logging.level: "debug"` in uploader.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    upload_dir = Path(config.receiver.upload_dir)
    if not upload_dir.is_dir():
        logger.warning(
            f"Upload directory '{upload_dir}' does not exist; uploads will fail until it is created"
        )

    logger.info(f"Server listening on port {config.server.port}")

    yield  # Application runs here

    logger.info("Application shutdown complete")


app = FastAPI(
    title="Image Uploader API",
    description="Upload receiver and image selector backend",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(receiver_router)
app.include_router(selector_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run() -> None:
    """Start the server on the configured host and port (``PORT`` overrides)."""
    config = get_config()
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
