import re
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import Settings
from app.core.logging import logger

LOCALHOST_PATTERN = r"https?://(?:localhost|127\.0\.0\.1)(?::\d+)?"


class OriginPolicy:
    """Decides which browser origins may call the API.

    Development accepts everything. Production accepts the configured
    allow-list, any localhost/loopback origin and the public pages domain.
    Requests without an Origin header (curl, server to server) are never
    rejected here.
    """

    def __init__(self, settings: Settings):
        self.permissive = not settings.is_production
        self.allowed = set(settings.origin_list)
        self.pages_pattern = settings.pages_origin_pattern
        self._localhost = re.compile(LOCALHOST_PATTERN)
        self._pages = re.compile(self.pages_pattern)

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin or self.permissive:
            return True
        origin = origin.rstrip("/")
        if origin in self.allowed:
            return True
        if self._localhost.fullmatch(origin):
            return True
        return bool(self._pages.match(origin))

    def as_regex(self) -> str:
        """Single regex equivalent to is_allowed, for CORSMiddleware."""
        parts = [re.escape(o) for o in sorted(self.allowed)]
        parts.append(LOCALHOST_PATTERN)
        parts.append(self.pages_pattern.lstrip("^").rstrip("$"))
        return "(?:" + "|".join(parts) + ")"


def install_cors(app: FastAPI, settings: Settings) -> OriginPolicy:
    policy = OriginPolicy(settings)

    if policy.permissive:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=policy.as_regex(),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Disposition"],
        )

    # Registered after CORSMiddleware so it runs first
    @app.middleware("http")
    async def reject_disallowed_origins(request: Request, call_next):
        origin = request.headers.get("origin")
        if not policy.is_allowed(origin):
            logger.warning(f"CORS rejected origin: {origin}")
            return JSONResponse(
                status_code=403,
                content={"error": "CORS", "mensaje": f"Origen no permitido: {origin}"},
            )
        return await call_next(request)

    return policy
