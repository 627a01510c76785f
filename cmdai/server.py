"""JSON API exposing command resolution to external integrations.

``cmdai serve`` runs this app with uvicorn.  Endpoints:

``POST /resolve``
    Body ``{"tool": "git", "query": "undo last commit"}``.  Returns the
    resolved command, its description, whether it needs confirmation
    and its provenance context.  Commands are never executed here.

``POST /feedback``
    Body ``{"tool", "query", "command", "accepted", "successful"}``.
    Records the outcome in the learning store.  The two flags must be
    JSON booleans and default to false.

``GET /health``
    Liveness check.
"""

from __future__ import annotations

from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .context import get_context
from .models import CommandContext, CommandRequest, CommandResult
from .services import Services


def _require_text(body: dict, key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise HTTPException(status_code=400, detail=f"'{key}' field must be a non-empty string")
    return value.strip()


def _optional_flag(body: dict, key: str) -> bool:
    value = body.get(key, False)
    if not isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"'{key}' field must be a boolean")
    return value


def create_app(
    services: Services,
    context_factory: Callable[[], CommandContext] = get_context,
) -> FastAPI:
    app = FastAPI(title="cmdai", version="1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/resolve")
    def resolve(body: dict) -> dict:
        request = CommandRequest(_require_text(body, "tool"), _require_text(body, "query"))
        result = services.resolver.resolve(request, context_factory())
        if result is None:
            raise HTTPException(
                status_code=404,
                detail=f"No command found for '{request.query}' with {request.tool}",
            )
        return {
            "command": result.command,
            "description": result.description,
            "requires_confirmation": result.requires_confirmation,
            "context": result.context,
        }

    @app.post("/feedback")
    def feedback(body: dict) -> dict:
        request = CommandRequest(_require_text(body, "tool"), _require_text(body, "query"))
        command = _require_text(body, "command")
        accepted = _optional_flag(body, "accepted")
        successful = _optional_flag(body, "successful")
        services.learning.record_feedback(request, CommandResult(command, ""), accepted, successful)
        return {"status": "recorded"}

    return app
