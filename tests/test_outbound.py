"""
tests.test_outbound

Observation of outbound httpx calls.
"""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from apitoolkit.outbound import ObserveOptions
from apitoolkit.settings import Settings


def _posts_api(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        201,
        json={"id": 1, "user": {"data": {"email": "a@b.c"}}},
        headers={"X-Request-Id": "abc"},
    )


@pytest.mark.asyncio
async def test_observes_call_and_returns_untouched_response(make_client, transport) -> None:
    client = make_client(Settings(redact_headers=["authorization"]))
    options = ObserveOptions(
        path_wildcard="/posts/{id}",
        redact_request_body=["$.user.password"],
        redact_response_body=["$.user.data.email"],
    )

    async with client.observing_http_client(
        options=options, transport=httpx.MockTransport(_posts_api)
    ) as http:
        r = await http.post(
            "https://api.example.com/posts/1?x=1",
            json={"user": {"name": "n", "password": "p"}},
            headers={"Authorization": "Bearer t"},
        )

    assert r.status_code == 201
    assert r.json() == {"id": 1, "user": {"data": {"email": "a@b.c"}}}
    assert r.headers["X-Request-Id"] == "abc"

    payloads = transport.payloads()
    assert len(payloads) == 1
    p = payloads[0]
    assert p["sdk_type"] == "PythonOutgoing"
    assert p["method"] == "POST"
    assert p["host"] == "api.example.com"
    assert p["raw_url"] == "/posts/1?x=1"
    assert p["url_path"] == "/posts/{id}"
    assert p["query_params"] == {"x": ["1"]}
    assert p["status_code"] == 201
    assert p["request_headers"]["authorization"] == ["[CLIENT_REDACTED]"]
    assert p["response_headers"]["x-request-id"] == ["abc"]
    assert json.loads(base64.b64decode(p["request_body"])) == {
        "user": {"name": "n", "password": "[CLIENT_REDACTED]"}
    }
    assert json.loads(base64.b64decode(p["response_body"])) == {
        "id": 1,
        "user": {"data": {"email": "[CLIENT_REDACTED]"}},
    }


@pytest.mark.asyncio
async def test_url_path_defaults_to_request_path(make_client, transport) -> None:
    client = make_client()

    async with client.observing_http_client(transport=httpx.MockTransport(_posts_api)) as http:
        await http.get("https://api.example.com/posts/5")

    p = transport.payloads()[0]
    assert p["url_path"] == "/posts/5"
    assert p["request_body"] == ""


@pytest.mark.asyncio
async def test_send_failure_is_recorded_and_reraised(make_client, transport) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client()

    async with client.observing_http_client(transport=httpx.MockTransport(refuse)) as http:
        with pytest.raises(httpx.ConnectError):
            await http.get("https://api.example.com/posts/5")

    p = transport.payloads()[0]
    assert p["status_code"] == 0
    assert p["errors"][0]["error_type"] == "ConnectError"
    assert p["errors"][0]["message"] == "connection refused"


@pytest.mark.asyncio
async def test_non_json_bodies_are_captured_verbatim(make_client, transport) -> None:
    def binary(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\x89PNG\r\n")

    client = make_client(Settings(redact_response_body=["$.anything"]))

    async with client.observing_http_client(transport=httpx.MockTransport(binary)) as http:
        r = await http.get("https://cdn.example.com/logo.png")

    assert r.content == b"\x89PNG\r\n"
    assert base64.b64decode(transport.payloads()[0]["response_body"]) == b"\x89PNG\r\n"


@pytest.mark.asyncio
async def test_publish_failure_does_not_fail_the_call(make_client, make_transport) -> None:
    client = make_client(transport_=make_transport(fail_with=RuntimeError("down")))

    async with client.observing_http_client(transport=httpx.MockTransport(_posts_api)) as http:
        r = await http.get("https://api.example.com/posts/1")

    assert r.status_code == 201


# --- Module Notes -----------------------------------------------------------
# httpx.MockTransport plays the role of the network; ObservingTransport wraps it.
