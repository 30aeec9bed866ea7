"""Control API for runtime management using FastAPI."""
import logging
import time

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel
from prometheus_client import CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class ControlAPI:
    """FastAPI-based control API for the forwarder."""

    def __init__(self, scheduler):
        """
        Initialize control API.

        Args:
            scheduler: Reference to the forwarder scheduler
        """
        self.scheduler = scheduler
        self.app = FastAPI(title="Prometheus Remote Write Forwarder Control API")
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/status")
        async def status():
            """Get current forwarder status."""
            return self.scheduler.status()

        @self.app.get("/metrics")
        async def metrics():
            """Forwarder self metrics in the text exposition format."""
            return Response(
                content=self.scheduler.self_metrics.render(),
                media_type=CONTENT_TYPE_LATEST,
            )

        @self.app.post("/control/stop")
        async def stop():
            """Stop the forwarding loop after the current cycle."""
            already_stopped = self.scheduler.stopped
            if not already_stopped:
                self.scheduler.stop()
            return {
                "status": "already_stopped" if already_stopped else "stopping",
                "cycle_count": self.scheduler.cycle_count,
                "timestamp": time.time(),
            }

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in LOG_LEVELS:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

    def run(self, host: str = "127.0.0.1", port: int = 8081):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
