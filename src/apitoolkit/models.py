"""
apitoolkit.models

Wire and value types shared across the SDK.

Responsibilities:
- Define the client metadata returned by the APIToolkit backend.
- Define the telemetry payload published per request exchange (wire contract).
- Define captured application errors and publish outcomes.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ClientMetadata(BaseModel):
    """
    Project/topic identifiers and Pub/Sub credentials for this API key.
    """

    model_config = ConfigDict(frozen=True)

    project_id: str
    pubsub_project_id: str
    topic_id: str
    pubsub_push_service_account: dict[str, Any]


class ATError(BaseModel):
    model_config = ConfigDict(frozen=True)

    when: str
    error_type: str
    root_error_type: str
    message: str
    root_error_message: str
    stack_trace: str = ""


class Payload(BaseModel):
    """
    One telemetry record per request/response exchange.

    Bodies are raw bytes and serialize to base64 in JSON.
    `duration` is in nanoseconds.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime | None = None
    request_headers: dict[str, list[str]] = Field(default_factory=dict)
    response_headers: dict[str, list[str]] = Field(default_factory=dict)
    query_params: dict[str, list[str]] = Field(default_factory=dict)
    path_params: dict[str, str] = Field(default_factory=dict)
    method: str = ""
    sdk_type: str = ""
    host: str = ""
    raw_url: str = ""
    referer: str = ""
    project_id: str = ""
    url_path: str = ""
    response_body: bytes = b""
    request_body: bytes = b""
    proto_minor: int = 0
    status_code: int = 0
    proto_major: int = 0
    duration: int = 0
    errors: list[ATError] = Field(default_factory=list)

    @field_serializer("request_body", "response_body", when_used="json")
    def serialize_body(self, body: bytes) -> str:
        # Standard alphabet, not URL-safe.
        return base64.b64encode(body).decode("ascii")


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    # Result of one publish attempt; logged, never returned to the request path.
    delivered: bool
    reason: str | None = None
    message_id: str | None = None


# --- Module Notes -----------------------------------------------------------
# Field names of `Payload` are the wire keys; renaming one is a breaking change for the
# ingestion side.
