"""
apitoolkit.client

SDK client: initialization, payload building, and publishing.

Responsibilities:
- Fetch client metadata from the APIToolkit backend and build the transport.
- Build payloads with the client's metadata and redaction settings.
- Publish payloads without ever failing the instrumented request.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError
from starlette.requests import HTTPConnection

from apitoolkit.errors import report_error
from apitoolkit.exceptions import ClientInitError
from apitoolkit.models import ATError, ClientMetadata, DeliveryOutcome, Payload
from apitoolkit.observability.logging import get_logger
from apitoolkit.payload import RequestSnapshot, build_payload
from apitoolkit.settings import Settings
from apitoolkit.transport import PubSubTransport, Transport

if TYPE_CHECKING:
    from apitoolkit.outbound import ObserveOptions, ObservingTransport

log = get_logger(__name__)

TransportFactory = Callable[[ClientMetadata], Transport]


class Client:
    """
    Process-wide SDK handle.
    - Owns the transport (closed by `aclose`).
    - `transport=None` is valid: payloads are built but never sent.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        metadata: ClientMetadata | None,
        transport: Transport | None,
    ) -> None:
        self._settings = settings
        self._metadata = metadata
        self._transport = transport
        self._pending: set[asyncio.Task[DeliveryOutcome]] = set()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def metadata(self) -> ClientMetadata | None:
        return self._metadata

    def build_payload(
        self,
        *,
        sdk_type: str,
        elapsed_ns: int,
        request: RequestSnapshot | None,
        status_code: int,
        request_body: bytes,
        response_body: bytes,
        response_headers: Mapping[str, list[str]],
        path_params: Mapping[str, str],
        url_path: str,
        errors: list[ATError],
        settings: Settings | None = None,
    ) -> Payload:
        return build_payload(
            sdk_type=sdk_type,
            elapsed_ns=elapsed_ns,
            request=request,
            status_code=status_code,
            request_body=request_body,
            response_body=response_body,
            response_headers=response_headers,
            path_params=path_params,
            url_path=url_path,
            errors=errors,
            metadata=self._metadata,
            settings=settings or self._settings,
        )

    def report_error(self, request: HTTPConnection, error: BaseException) -> None:
        report_error(request, error)

    async def publish_message(self, payload: Payload) -> DeliveryOutcome:
        if self._transport is None:
            if self._settings.debug:
                log.info(
                    "publish_skipped",
                    reason="transport not initialized; messages are not being sent to apitoolkit",
                )
            return DeliveryOutcome(delivered=False, reason="transport not configured")

        try:
            data = payload.model_dump_json().encode("utf-8")
            message_id = await self._transport.publish(
                data,
                attributes={"publish_time": _utc_now_iso()},
            )
        except Exception as e:
            # Delivery is best-effort; the instrumented request must not see this.
            log.warning("publish_failed", error=str(e), error_type=type(e).__name__)
            return DeliveryOutcome(delivered=False, reason=f"{type(e).__name__}: {e}")

        if self._settings.debug:
            log.info("message_published", message_id=message_id)
            if self._settings.verbose_debug:
                log.info("message_payload", payload=data.decode("utf-8"))
        return DeliveryOutcome(delivered=True, message_id=message_id)

    async def submit(self, payload: Payload) -> None:
        if self._settings.publish_mode == "await":
            await self.publish_message(payload)
            return

        task = asyncio.create_task(self.publish_message(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def observing_transport(
        self,
        *,
        options: ObserveOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ObservingTransport:
        from apitoolkit.outbound import ObservingTransport

        return ObservingTransport(client=self, options=options, transport=transport)

    def observing_http_client(
        self, *, options: ObserveOptions | None = None, **kwargs
    ) -> httpx.AsyncClient:
        # kwargs go to httpx.AsyncClient (base_url, timeout, headers...).
        inner = kwargs.pop("transport", None)
        return httpx.AsyncClient(
            transport=self.observing_transport(options=options, transport=inner),
            **kwargs,
        )

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._transport is not None:
            await self._transport.aclose()


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")


async def fetch_client_metadata(
    settings: Settings, *, http: httpx.AsyncClient | None = None
) -> ClientMetadata:
    url = f"{settings.base_url}/api/client_metadata"
    headers = {"Authorization": f"Bearer {settings.api_key}"}
    own_http = http is None
    http = http or httpx.AsyncClient(timeout=settings.metadata_timeout_seconds)
    try:
        r = await http.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise ClientInitError(f"unable to query apitoolkit for client metadata: {e}") from e
    finally:
        if own_http:
            await http.aclose()

    if not r.is_success:
        raise ClientInitError(
            f"unable to query apitoolkit for client metadata: {r.status_code}"
        )

    try:
        return ClientMetadata.model_validate_json(r.content)
    except ValidationError as e:
        raise ClientInitError(f"unable to deserialize client metadata response: {e}") from e


async def new_client(
    settings: Settings,
    *,
    http: httpx.AsyncClient | None = None,
    transport_factory: TransportFactory = PubSubTransport.from_metadata,
) -> Client:
    """
    Build a ready-to-use client. Raises `ClientInitError` on any failure; no partial
    client is returned.
    """

    metadata = await fetch_client_metadata(settings, http=http)
    try:
        transport = transport_factory(metadata)
    except ClientInitError:
        raise
    except Exception as e:
        raise ClientInitError(f"unable to create pubsub publisher: {e}") from e

    client = Client(settings=settings, metadata=metadata, transport=transport)
    if settings.debug:
        log.info("client_initialized", project_id=metadata.project_id)
    return client


# --- Module Notes -----------------------------------------------------------
# `http` and `transport_factory` exist so tests (and hosts with their own HTTP client)
# can inject collaborators; production callers pass only settings.
