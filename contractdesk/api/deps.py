"""Process-wide services and the dependencies that hand them to route handlers."""

import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Annotated, TypeVar

from fastapi import Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from contractdesk.core.config import Settings
from contractdesk.core.rate_limit import FixedWindowRateLimiter
from contractdesk.core.sessions import SessionStore

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class AppServices:
    """Built once in create_app and stored on app.state.services."""

    settings: Settings
    session_store: SessionStore
    login_limiter: FixedWindowRateLimiter
    register_limiter: FixedWindowRateLimiter
    started_at: float = field(default_factory=time.time)


def build_limiters(settings: Settings) -> tuple[FixedWindowRateLimiter, FixedWindowRateLimiter]:
    """Return (login_limiter, register_limiter) from settings."""
    login_minutes = max(1, settings.LOGIN_RATE_LIMIT_WINDOW_SEC // 60)
    register_minutes = max(1, settings.REGISTER_RATE_LIMIT_WINDOW_SEC // 60)
    login = FixedWindowRateLimiter(
        max_hits=settings.LOGIN_RATE_LIMIT_MAX,
        window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SEC,
        message=f"Too many login attempts. Please try again after {login_minutes} minutes.",
    )
    register = FixedWindowRateLimiter(
        max_hits=settings.REGISTER_RATE_LIMIT_MAX,
        window_seconds=settings.REGISTER_RATE_LIMIT_WINDOW_SEC,
        message=f"Too many registration attempts. Please try again after {register_minutes} minutes.",
    )
    return login, register


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def client_address(request: Request) -> str:
    """Rate-limit key. Behind a proxy, run uvicorn with --proxy-headers so this is the real client."""
    return request.client.host if request.client else "unknown"


def enforce_login_limit(
    request: Request,
    response: Response,
    services: Annotated[AppServices, Depends(get_services)],
) -> str:
    """Reject once the caller's failed logins fill the window. Returns the limiter key."""
    key = client_address(request)
    status = services.login_limiter.check(key)
    response.headers.update(status.headers())
    return key


def enforce_register_limit(
    request: Request,
    response: Response,
    services: Annotated[AppServices, Depends(get_services)],
) -> None:
    """Count every registration attempt, valid or not, and reject past the limit."""
    status = services.register_limiter.consume(client_address(request))
    response.headers.update(status.headers())


def json_body(model: type[ModelT]) -> Callable[[Request], Awaitable[ModelT]]:
    """
    Dependency factory that decodes and validates the JSON body as model.

    A body declared as a handler parameter is decoded by FastAPI before any
    dependency runs, so a malformed payload would be rejected ahead of guards
    and rate limits. Declared after those dependencies, this one runs last.
    """

    async def read_body(request: Request) -> ModelT:
        raw = await request.body()
        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
            ) from e
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(
                [{**err, "loc": ("body", *err["loc"])} for err in e.errors(include_url=False)]
            ) from e

    return read_body


def json_body_openapi(model: type[BaseModel]) -> dict:
    """openapi_extra documenting a body that is read through json_body."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }
