"""
apitoolkit.errors

Request-scoped collection of application-reported errors.

Responsibilities:
- Hold a typed, per-request error list on the request's ASGI state.
- Convert exceptions (including their cause chain) into `ATError` records.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime

from starlette.requests import HTTPConnection

from apitoolkit.models import ATError

CONTEXT_KEY = "apitoolkit"


@dataclass(slots=True)
class RequestTelemetry:
    """
    Per-request capture context. Lives in `request.state` and dies with the request.
    """

    errors: list[ATError] = field(default_factory=list)


def request_telemetry(request: HTTPConnection) -> RequestTelemetry:
    # Usable as a FastAPI dependency: `ctx: RequestTelemetry = Depends(request_telemetry)`.
    ctx = getattr(request.state, CONTEXT_KEY, None)
    if ctx is None:
        ctx = RequestTelemetry()
        setattr(request.state, CONTEXT_KEY, ctx)
    return ctx


def get_errors(request: HTTPConnection) -> list[ATError]:
    ctx = getattr(request.state, CONTEXT_KEY, None)
    return list(ctx.errors) if ctx is not None else []


def report_error(request: HTTPConnection, error: BaseException) -> None:
    request_telemetry(request).errors.append(build_error(error))


def _root_cause(error: BaseException) -> BaseException:
    # Explicit `raise ... from` wins; otherwise follow implicit context unless suppressed.
    seen = {id(error)}
    current = error
    while True:
        nxt = current.__cause__
        if nxt is None and not current.__suppress_context__:
            nxt = current.__context__
        if nxt is None or id(nxt) in seen:
            return current
        seen.add(id(nxt))
        current = nxt


def build_error(error: BaseException) -> ATError:
    now = datetime.now(tz=UTC)
    root = _root_cause(error)
    tb = error.__traceback__
    return ATError(
        when=now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z",
        error_type=type(error).__name__,
        message=str(error),
        stack_trace="".join(traceback.format_tb(tb)) if tb is not None else "",
        root_error_type=type(root).__name__,
        root_error_message=str(root),
    )


# --- Module Notes -----------------------------------------------------------
# Starlette keeps `request.state` in the ASGI scope, so the middleware's Request and
# the endpoint's Request see the same `RequestTelemetry` instance.
