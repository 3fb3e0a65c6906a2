"""
apitoolkit.transport

Message transport boundary used by the publisher.

Responsibilities:
- Define the minimal publish capability the client depends on (`Transport`).
- Provide the Google Cloud Pub/Sub implementation built from client metadata.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Protocol

from google.cloud import pubsub_v1
from google.oauth2 import service_account

from apitoolkit.exceptions import ClientInitError
from apitoolkit.models import ClientMetadata

PUBSUB_SCOPES = ("https://www.googleapis.com/auth/pubsub",)


class Transport(Protocol):
    async def publish(self, data: bytes, *, attributes: Mapping[str, str]) -> str:
        """Publish one message and return the transport's message id."""
        ...

    async def aclose(self) -> None: ...


class PubSubTransport:
    """
    Pub/Sub publisher bound to a single topic.
    The underlying `PublisherClient` is thread-safe and shared by all requests.
    """

    def __init__(self, *, publisher: pubsub_v1.PublisherClient, topic_path: str) -> None:
        self._publisher = publisher
        self._topic_path = topic_path

    @property
    def topic_path(self) -> str:
        return self._topic_path

    @classmethod
    def from_metadata(cls, metadata: ClientMetadata) -> PubSubTransport:
        try:
            credentials = service_account.Credentials.from_service_account_info(
                metadata.pubsub_push_service_account,
                scopes=list(PUBSUB_SCOPES),
            )
        except (ValueError, KeyError) as e:
            raise ClientInitError(f"invalid pubsub service account credentials: {e}") from e

        publisher = pubsub_v1.PublisherClient(credentials=credentials)
        topic_path = publisher.topic_path(metadata.pubsub_project_id, metadata.topic_id)
        return cls(publisher=publisher, topic_path=topic_path)

    async def publish(self, data: bytes, *, attributes: Mapping[str, str]) -> str:
        # The publisher batches in a background thread and hands back a concurrent future.
        future = self._publisher.publish(self._topic_path, data, **dict(attributes))
        return await asyncio.wrap_future(future)

    async def aclose(self) -> None:
        # stop() flushes pending batches and blocks; keep it off the event loop.
        await asyncio.to_thread(self._publisher.stop)


# --- Module Notes -----------------------------------------------------------
# Pub/Sub assigns the authoritative publish_time server-side; the client also sends its
# own UTC publish timestamp as a message attribute (see `Client.publish_message`).
