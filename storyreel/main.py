import time
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from . import config, metrics
from .auth_middleware import WorkerAuthMiddleware
from .pipeline import pipeline_router, scripts_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Worker starting up...")
    metrics.set_gauge("start_time", time.time())
    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set, generation requests will fail")
    yield
    logger.info("Worker shutting down...")


app = FastAPI(title="storyreel", lifespan=lifespan)
app.add_middleware(WorkerAuthMiddleware)
app.include_router(scripts_router)
app.include_router(pipeline_router)


@app.get("/health")
def health_check():
    """Verify the worker is running and the Gemini key is configured."""
    return {
        "status": "ok",
        "gemini_api_key_set": bool(config.GEMINI_API_KEY),
        "text_model": config.TEXT_MODEL,
        "video_model": config.VIDEO_MODEL,
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all worker metrics."""
    return metrics.get_snapshot()


def run():
    """Console entry point: serve the worker with uvicorn."""
    uvicorn.run("storyreel.main:app", host="0.0.0.0", port=int(config.PORT))


if __name__ == "__main__":
    run()
