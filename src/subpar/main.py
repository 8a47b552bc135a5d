"""Push endpoint server.

`Subpar` wires the handler registry and dispatcher to a FastAPI app with a
single POST route (the push endpoint) and a liveness probe. Register handlers,
then call `initialize()` for the ASGI app or `start()` to serve it with uvicorn.
"""
from __future__ import annotations

import posixpath
from typing import Any, Callable, Dict, Mapping, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from subpar.auth import bearer_token, verify_push_token
from subpar.config import load_settings
from subpar.dispatch import DispatchResult, Dispatcher, HandlerContext
from subpar.errors import ConfigurationError
from subpar.registry import HandlerRegistry
from subpar.utils.logger_util import get_logger

logger = get_logger(__name__)

# attributes HandlerContext sets itself; bindings/decorations may not shadow them
RESERVED_CONTEXT_NAMES = {"bindings", "decorations", "request", "validation_error"}


class ServerOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "/"
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=0, le=65535)
    environment: str = "development"
    push_token_secret: Optional[str] = None

    @field_validator("path")
    @classmethod
    def _absolute_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v


def to_response(result: DispatchResult) -> Response:
    """Map a dispatch result onto the HTTP acknowledgment for the push source."""
    if not result.handled:
        # unmatched and invalid messages are acknowledged, never retried
        return Response(status_code=204)
    value = result.value
    if isinstance(value, Response):
        return value
    if value is None:
        return Response(status_code=200)
    if isinstance(value, str):
        return PlainTextResponse(value)
    return JSONResponse(jsonable_encoder(value))


class Subpar:
    def __init__(self, name: str, **options: Any):
        self.name = name

        settings = load_settings()
        merged = {
            "path": settings.path,
            "host": settings.host,
            "port": settings.port,
            "environment": settings.environment,
            "push_token_secret": settings.push_token_secret,
        }
        merged.update(options)
        try:
            validated = ServerOptions(**merged)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid options: {exc}") from exc

        self.path = validated.path
        self.host = validated.host
        self.port = validated.port
        self.environment = validated.environment
        self.push_token_secret = validated.push_token_secret

        self.registry = HandlerRegistry()
        self.bindings: Dict[str, Any] = {}
        self.decorations: Dict[str, Any] = {}
        self.dispatcher: Optional[Dispatcher] = None
        self.app: Optional[FastAPI] = None

    @property
    def healthcheck_path(self) -> str:
        return posixpath.join(self.path, "healthcheck")

    def bind(self, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Share values with every handler call, as attributes of its context."""
        merged = dict(values or {})
        merged.update(kwargs)
        reserved = RESERVED_CONTEXT_NAMES.intersection(merged)
        if reserved:
            raise ConfigurationError(f"cannot bind reserved context names: {sorted(reserved)}")
        self.bindings.update(merged)

    def decorate(self, name: str, value: Any) -> None:
        if name in RESERVED_CONTEXT_NAMES:
            raise ConfigurationError(f"cannot decorate reserved context name '{name}'")
        if name in self.decorations:
            raise ConfigurationError(f"context decoration '{name}' already defined")
        self.decorations[name] = value

    def register(self, handler: Callable[..., Any], condition: Optional[Mapping[str, Any]] = None) -> Optional[int]:
        return self.registry.register(handler, condition)

    def handler(self, condition: Optional[Mapping[str, Any]] = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of register()."""

        def _decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(fn, condition)
            return fn

        return _decorator

    def _authorized(self, request: Request) -> bool:
        if not self.push_token_secret:
            return True
        token = bearer_token(request.headers.get("authorization"))
        return token is not None and verify_push_token(token, self.push_token_secret) is not None

    def initialize(self) -> FastAPI:
        """Freeze registrations and build the ASGI app. Safe to call twice."""
        if self.app is not None:
            return self.app

        table = self.registry.freeze()
        self.dispatcher = Dispatcher(table)
        app = FastAPI(title=self.name)

        @app.get(self.healthcheck_path)
        async def healthcheck():
            return {"alive": True}

        @app.post(self.path)
        async def receive(request: Request):
            if not self._authorized(request):
                return JSONResponse({"detail": "invalid push token"}, status_code=401)
            try:
                payload = await request.json()
            except ValueError:
                # an unreadable body is just another invalid envelope
                payload = None
            context = HandlerContext(self.bindings, self.decorations, request=request)
            try:
                result = await self.dispatcher.dispatch(payload, context)
            except Exception:
                logger.error("handler failed for push on %s", self.path, exc_info=True)
                raise
            return to_response(result)

        self.app = app
        return app

    def start(self, **uvicorn_options: Any) -> None:
        app = self.initialize()
        logger.info(
            "Started function '%s' in %s mode on port %s with handler for: POST %s",
            self.name,
            self.environment,
            self.port,
            self.path,
        )
        uvicorn.run(app, host=self.host, port=self.port, **uvicorn_options)
