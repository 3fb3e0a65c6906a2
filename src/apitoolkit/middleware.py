"""
apitoolkit.middleware

ASGI middleware that captures each request/response exchange and publishes it.

Responsibilities:
- Buffer the inbound body so downstream handlers can still read it.
- Capture the outbound body and replay the exact bytes to the real client.
- Report handler exceptions into the request's error list.
- Build and submit the payload on every exit path, never failing the request.
"""

from __future__ import annotations

import time

from starlette.concurrency import iterate_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from starlette.types import ASGIApp

from apitoolkit.client import Client
from apitoolkit.errors import get_errors, report_error, request_telemetry
from apitoolkit.observability.logging import get_logger
from apitoolkit.payload import RequestSnapshot, multi_map

log = get_logger(__name__)

SDK_TYPE = "PythonFastAPI"
APP_STATE_CLIENT = "apitoolkit_client"


class APIToolkitMiddleware(BaseHTTPMiddleware):
    """
    - Uses the client passed in, else `app.state.apitoolkit_client`.
    - Without a client the middleware is a pass-through.
    """

    def __init__(
        self,
        app: ASGIApp,
        client: Client | None = None,
        sdk_type: str = SDK_TYPE,
    ) -> None:
        super().__init__(app)
        self._client = client
        self._sdk_type = sdk_type

    def _resolve_client(self, request: Request) -> Client | None:
        if self._client is not None:
            return self._client
        host_app = request.scope.get("app")
        state = getattr(host_app, "state", None)
        return getattr(state, APP_STATE_CLIENT, None)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client = self._resolve_client(request)
        if client is None:
            return await call_next(request)

        started = time.perf_counter_ns()
        try:
            # Cached on the request; BaseHTTPMiddleware replays it to the endpoint.
            request_body = await request.body()
        except ClientDisconnect:
            request_body = b""
        request_telemetry(request)

        response: Response | None = None
        response_body = b""
        status_code = HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
            response_body = await _capture_body(response)
            return response
        except Exception as e:
            report_error(request, e)
            raise
        finally:
            elapsed_ns = time.perf_counter_ns() - started
            await self._deliver(
                client,
                request=request,
                response=response,
                status_code=status_code,
                request_body=request_body,
                response_body=response_body,
                elapsed_ns=elapsed_ns,
            )

    async def _deliver(
        self,
        client: Client,
        *,
        request: Request,
        response: Response | None,
        status_code: int,
        request_body: bytes,
        response_body: bytes,
        elapsed_ns: int,
    ) -> None:
        try:
            payload = client.build_payload(
                sdk_type=self._sdk_type,
                elapsed_ns=elapsed_ns,
                request=RequestSnapshot.from_starlette(request),
                status_code=status_code,
                request_body=request_body,
                response_body=response_body,
                response_headers=multi_map(response.headers.items()) if response is not None else {},
                path_params=_path_params(request),
                url_path=_route_template(request),
                errors=get_errors(request),
            )
            await client.submit(payload)
        except Exception:
            log.exception("capture_failed", method=request.method, path=request.url.path)


async def _capture_body(response: Response) -> bytes:
    body_iterator = getattr(response, "body_iterator", None)
    if body_iterator is None:
        return bytes(getattr(response, "body", b""))

    buffer = bytearray()
    async for chunk in body_iterator:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        buffer.extend(chunk)
    body = bytes(buffer)
    # The original iterator is exhausted; hand the client the same bytes.
    response.body_iterator = iterate_in_threadpool(iter([body]))
    return body


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "") or ""


def _path_params(request: Request) -> dict[str, str]:
    return {
        key: str(value)
        for key, value in request.path_params.items()
        if value is not None and str(value) != ""
    }


# --- Module Notes -----------------------------------------------------------
# Route and path params are read after `call_next` because the router fills them into
# the shared ASGI scope while dispatching.
