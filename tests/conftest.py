"""
tests.conftest

Shared fixtures for the SDK test suite.

Responsibilities:
- Provide an in-memory `Transport` that records published messages.
- Provide client metadata and client factories that never touch the network.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import pytest

from apitoolkit.client import Client
from apitoolkit.models import ClientMetadata
from apitoolkit.settings import Settings


class RecordingTransport:
    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.messages: list[tuple[bytes, dict[str, str]]] = []
        self.closed = False
        self._fail_with = fail_with

    async def publish(self, data: bytes, *, attributes: Mapping[str, str]) -> str:
        if self._fail_with is not None:
            raise self._fail_with
        self.messages.append((data, dict(attributes)))
        return f"msg-{len(self.messages)}"

    async def aclose(self) -> None:
        self.closed = True

    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(data) for data, _ in self.messages]


@pytest.fixture
def metadata() -> ClientMetadata:
    return ClientMetadata(
        project_id="project_id",
        pubsub_project_id="pubsub-project",
        topic_id="apitoolkit-topic",
        pubsub_push_service_account={"type": "service_account"},
    )


@pytest.fixture
def make_transport() -> type[RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_client(metadata: ClientMetadata, transport: RecordingTransport):
    def _make(
        settings: Settings | None = None, *, transport_: Any = transport
    ) -> Client:
        return Client(settings=settings or Settings(), metadata=metadata, transport=transport_)

    return _make


# --- Module Notes -----------------------------------------------------------
# `RecordingTransport` stands in for Pub/Sub; `PubSubTransport` is tested with a fake
# publisher in test_transport.py.
