"""
apitoolkit.outbound

Observation of outbound HTTP calls made with httpx.

Responsibilities:
- Wrap a real httpx transport and capture request/response data around each send.
- Publish one payload per outbound call through the SDK client.
- Stay purely observational: the inner response is returned untouched.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from apitoolkit.errors import build_error
from apitoolkit.models import ATError
from apitoolkit.observability.logging import get_logger
from apitoolkit.payload import RequestSnapshot, multi_map

if TYPE_CHECKING:
    from apitoolkit.client import Client
    from apitoolkit.settings import Settings

log = get_logger(__name__)

SDK_TYPE = "PythonOutgoing"


@dataclass(frozen=True, slots=True)
class ObserveOptions:
    """
    Per-client overrides. `None` means "use the SDK client's settings".
    `path_wildcard` is reported as the route template, e.g. "/posts/{id}".
    """

    path_wildcard: str | None = None
    redact_headers: list[str] | None = None
    redact_request_body: list[str] | None = None
    redact_response_body: list[str] | None = None


class ObservingTransport(httpx.AsyncBaseTransport):
    def __init__(
        self,
        *,
        client: Client,
        options: ObserveOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = client
        self._options = options or ObserveOptions()
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._settings = self._effective_settings()

    def _effective_settings(self) -> Settings:
        overrides = {
            name: value
            for name in ("redact_headers", "redact_request_body", "redact_response_body")
            if (value := getattr(self._options, name)) is not None
        }
        base = self._client.settings
        return base.model_copy(update=overrides) if overrides else base

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        started = time.perf_counter_ns()
        request_body = await _read_request_body(request)

        response: httpx.Response | None = None
        errors: list[ATError] = []
        try:
            response = await self._transport.handle_async_request(request)
        except Exception as e:
            errors.append(build_error(e))
            raise
        finally:
            response_body = await _tee_response_body(response) if response is not None else b""
            elapsed_ns = time.perf_counter_ns() - started
            await self._deliver(
                request=request,
                response=response,
                request_body=request_body,
                response_body=response_body,
                errors=errors,
                elapsed_ns=elapsed_ns,
            )
        return response

    async def _deliver(
        self,
        *,
        request: httpx.Request,
        response: httpx.Response | None,
        request_body: bytes,
        response_body: bytes,
        errors: list[ATError],
        elapsed_ns: int,
    ) -> None:
        try:
            protocol = "HTTP/1.1"
            if response is not None:
                raw = response.extensions.get("http_version", b"HTTP/1.1")
                protocol = raw.decode("ascii") if isinstance(raw, bytes) else str(raw)
            payload = self._client.build_payload(
                sdk_type=SDK_TYPE,
                elapsed_ns=elapsed_ns,
                request=RequestSnapshot.from_httpx(request, protocol=protocol),
                status_code=response.status_code if response is not None else 0,
                request_body=request_body,
                response_body=response_body,
                response_headers=multi_map(response.headers.multi_items()) if response is not None else {},
                path_params={},
                url_path=self._options.path_wildcard or request.url.path,
                errors=errors,
                settings=self._settings,
            )
            await self._client.submit(payload)
        except Exception:
            log.exception("outbound_capture_failed", method=request.method, url=str(request.url))

    async def aclose(self) -> None:
        await self._transport.aclose()


async def _read_request_body(request: httpx.Request) -> bytes:
    # aread() swaps a streaming body for an in-memory one, so the inner transport still sends it.
    try:
        return await request.aread()
    except Exception as e:
        log.warning("outbound_request_body_unavailable", error=str(e))
        return b""


async def _tee_response_body(response: httpx.Response) -> bytes:
    try:
        raw = b"".join([part async for part in response.stream])
    except Exception as e:
        log.warning("outbound_response_body_unavailable", error=str(e))
        return b""
    await response.stream.aclose()
    # Same raw bytes back in place: httpx decodes and times the response as usual.
    response.stream = httpx.ByteStream(raw)
    try:
        return httpx.Response(response.status_code, headers=response.headers, content=raw).content
    except httpx.DecodingError:
        return raw


# --- Module Notes -----------------------------------------------------------
# Streaming responses are buffered in full before being handed back to httpx; use a
# plain transport for large downloads.
