"""
apitoolkit.payload

Telemetry payload construction.

Responsibilities:
- Take read-only snapshots of inbound (Starlette) and outbound (httpx) requests.
- Parse protocol versions and convert timings.
- Assemble a redacted `Payload` from one captured exchange.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
from starlette.requests import Request

from apitoolkit.models import ATError, ClientMetadata, Payload
from apitoolkit.observability.logging import get_logger
from apitoolkit.redaction import redact_headers, redact_json
from apitoolkit.settings import Settings

log = get_logger(__name__)

DEFAULT_PROTOCOL = (1, 1)


def multi_map(items: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """
    Group (key, value) pairs into key -> [values], keeping first-seen key order
    and the relative order of repeated values.
    """

    grouped: dict[str, list[str]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return grouped


@dataclass(frozen=True, slots=True)
class RequestSnapshot:
    """
    Read-only view of a request, detached from the live request object.
    """

    method: str
    host: str
    raw_url: str
    headers: dict[str, list[str]] = field(default_factory=dict)
    query_params: dict[str, list[str]] = field(default_factory=dict)
    protocol: str = "HTTP/1.1"

    @property
    def referer(self) -> str:
        for name, values in self.headers.items():
            if name.lower() == "referer":
                return ", ".join(values)
        return ""

    @classmethod
    def from_starlette(cls, request: Request) -> RequestSnapshot:
        scope = request.scope
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else request.url.path
        query = scope.get("query_string", b"").decode("latin-1")
        return cls(
            method=request.method,
            host=request.url.hostname or "",
            raw_url=f"{path}?{query}" if query else path,
            headers=multi_map(request.headers.items()),
            query_params=multi_map(request.query_params.multi_items()),
            protocol=f"HTTP/{scope.get('http_version', '1.1')}",
        )

    @classmethod
    def from_httpx(cls, request: httpx.Request, *, protocol: str = "HTTP/1.1") -> RequestSnapshot:
        url = request.url
        query = url.query.decode("ascii")
        return cls(
            method=request.method,
            host=url.host,
            raw_url=url.raw_path.decode("ascii"),
            headers=multi_map(request.headers.multi_items()),
            query_params=multi_map(url.params.multi_items()) if query else {},
            protocol=protocol,
        )


def parse_protocol(protocol: str) -> tuple[int, int]:
    # "HTTP/1.1" -> (1, 1). Anything without two numeric parts falls back to 1.1.
    _, _, version = protocol.partition("/")
    parts = version.split(".") if version else []
    if len(parts) < 2 or not all(p.isdigit() for p in parts):
        return DEFAULT_PROTOCOL
    return int(parts[0]), int(parts[1])


def build_payload(
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
    metadata: ClientMetadata | None,
    settings: Settings,
) -> Payload:
    """
    Build the telemetry record for one exchange.

    `elapsed_ns` comes from `time.perf_counter_ns()` deltas, whose tick is one
    nanosecond, so it is used as-is for `duration` (conversion factor 1).
    Returns an empty `Payload` when there is no request or no client metadata.
    """

    if request is None or metadata is None:
        if settings.debug:
            log.info("payload_skipped", reason="missing request or client metadata")
        return Payload()

    major, minor = parse_protocol(request.protocol)
    return Payload(
        timestamp=datetime.now(tz=UTC),
        duration=max(0, elapsed_ns),
        host=request.host,
        method=request.method,
        path_params=dict(path_params),
        project_id=metadata.project_id,
        proto_major=major,
        proto_minor=minor,
        query_params={k: list(v) for k, v in request.query_params.items()},
        raw_url=request.raw_url,
        referer=request.referer,
        request_body=redact_json(request_body, settings.redact_request_body),
        request_headers=redact_headers(request.headers, settings.redact_headers),
        response_body=redact_json(response_body, settings.redact_response_body),
        response_headers=redact_headers(response_headers, settings.redact_headers),
        sdk_type=sdk_type,
        status_code=status_code,
        url_path=url_path,
        errors=list(errors),
    )


# --- Module Notes -----------------------------------------------------------
# Redaction lists are taken from `settings`; the outbound observer passes a derived
# settings object when per-client overrides are configured.
