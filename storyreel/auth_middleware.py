"""
Shared-secret authentication middleware for the worker.

The generation endpoints (/scripts, /pipeline/*) require an X-Worker-Secret
header matching WORKER_SHARED_SECRET. The frontend's API routes attach this
header when forwarding requests to the worker.
"""

import secrets

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import config


class WorkerAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to generation endpoints."""

    PROTECTED_PREFIXES = ("/scripts", "/pipeline")

    def __init__(self, app, secret: str | None = None, environment: str | None = None):
        super().__init__(app)
        self.secret = config.WORKER_SHARED_SECRET if secret is None else secret
        self.environment = environment or config.ENVIRONMENT

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Health, metrics and docs stay public
        if not path.startswith(self.PROTECTED_PREFIXES):
            return await call_next(request)

        if not self.secret:
            # In development without the secret set, allow all traffic
            if self.environment == "development":
                return await call_next(request)
            return JSONResponse(status_code=500, content={"detail": "WORKER_SHARED_SECRET not configured"})

        provided = request.headers.get("X-Worker-Secret", "")
        if not secrets.compare_digest(provided, self.secret):
            return JSONResponse(status_code=401, content={"detail": "Invalid or missing worker secret"})

        return await call_next(request)
