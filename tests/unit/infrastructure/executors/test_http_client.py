"""HttpxHttpClient 单元测试

测试原则:
- 使用 httpx.MockTransport（完全离线）
- 校验最终发到线上的 method / URL / headers / body
"""

from __future__ import annotations

import json

import httpx
import pytest

from apprunner.domain.entities.executable_request import HttpExecutableRequest
from apprunner.domain.exceptions import TransportError, TransportTimeoutError
from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.key_value import KeyValuePair
from apprunner.infrastructure.executors.http_client import (
    HttpxHttpClient,
    build_body,
    coerce_json_value,
)


class _Recorder:
    def __init__(self, response: httpx.Response | None = None, error: Exception | None = None):
        self.response = response or httpx.Response(200, json={"ok": True})
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


def _client(recorder: _Recorder, **kwargs) -> HttpxHttpClient:
    return HttpxHttpClient(transport=httpx.MockTransport(recorder), **kwargs)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("42", 42),
        ("-3", -3),
        ("2.5", 2.5),
        ("TRUE", True),
        ("false", False),
        ("null", None),
        ("hello", "hello"),
        ("inf", "inf"),
        ("", ""),
    ],
)
def test_coerce_json_value(raw, expected):
    assert coerce_json_value(raw) == expected


class TestBuildBody:
    def test_json_body_keeps_types(self):
        request = HttpExecutableRequest(
            method=HttpMethod.POST,
            url="https://x.example.com",
            body=(KeyValuePair("count", "3"), KeyValuePair("name", "ada")),
        )

        content, content_type = build_body(request)

        assert content_type == "application/json"
        assert json.loads(content) == {"count": 3, "name": "ada"}

    def test_form_body(self):
        request = HttpExecutableRequest(
            method=HttpMethod.PUT,
            url="https://x.example.com",
            body=(KeyValuePair("q", "a b"), KeyValuePair("n", "1")),
            use_json_body=False,
        )

        content, content_type = build_body(request)

        assert content_type == "application/x-www-form-urlencoded"
        assert content == b"q=a+b&n=1"

    @pytest.mark.parametrize("method", [HttpMethod.GET, HttpMethod.DELETE, HttpMethod.HEAD])
    def test_methods_without_body(self, method):
        request = HttpExecutableRequest(
            method=method, url="https://x.example.com", body=(KeyValuePair("a", "1"),)
        )

        assert build_body(request) == (None, None)

    def test_raw_body_is_sent_verbatim(self):
        request = HttpExecutableRequest(
            method=HttpMethod.POST, url="https://x.example.com", raw_body='{"a":  1}'
        )

        assert build_body(request) == (b'{"a":  1}', "application/json")


class TestSend:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        recorder = _Recorder()
        request = HttpExecutableRequest(
            method=HttpMethod.POST,
            url="https://api.example.com/users/42",
            url_parameters=(KeyValuePair("api_version", "2"), KeyValuePair("tag", "a&b")),
            headers=(KeyValuePair("Authorization", "Bearer t0ken"),),
            body=(KeyValuePair("active", "true"),),
        )

        response = await _client(recorder).send(request, timeout=5)

        sent = recorder.requests[0]
        assert sent.method == "POST"
        assert sent.url.path == "/users/42"
        assert sent.url.params.multi_items() == [("api_version", "2"), ("tag", "a&b")]
        assert sent.headers["authorization"] == "Bearer t0ken"
        assert sent.headers["content-type"] == "application/json"
        assert json.loads(sent.content) == {"active": True}
        assert response.status_code == 200
        assert json.loads(response.body) == {"ok": True}
        assert not response.truncated

    @pytest.mark.asyncio
    async def test_explicit_content_type_is_kept(self):
        recorder = _Recorder()
        request = HttpExecutableRequest(
            method=HttpMethod.POST,
            url="https://api.example.com/",
            headers=(KeyValuePair("Content-Type", "application/vnd.api+json"),),
            raw_body="{}",
        )

        await _client(recorder).send(request, timeout=5)

        assert recorder.requests[0].headers.get_list("content-type") == ["application/vnd.api+json"]

    @pytest.mark.asyncio
    async def test_non_success_status_is_returned(self):
        recorder = _Recorder(httpx.Response(404, text="not found"))
        request = HttpExecutableRequest(method=HttpMethod.GET, url="https://api.example.com/x")

        response = await _client(recorder).send(request, timeout=5)

        assert response.status_code == 404
        assert not response.is_success
        assert response.body == "not found"

    @pytest.mark.asyncio
    async def test_large_body_is_truncated(self):
        recorder = _Recorder(httpx.Response(200, content=b"x" * 100))
        request = HttpExecutableRequest(method=HttpMethod.GET, url="https://api.example.com/big")

        response = await _client(recorder, max_response_bytes=10).send(request, timeout=5)

        assert response.truncated
        assert response.body == "x" * 10

    @pytest.mark.asyncio
    async def test_timeout_is_mapped(self):
        recorder = _Recorder(error=httpx.ReadTimeout("timed out"))
        request = HttpExecutableRequest(method=HttpMethod.GET, url="https://api.example.com/slow")

        with pytest.raises(TransportTimeoutError):
            await _client(recorder).send(request, timeout=1)

    @pytest.mark.asyncio
    async def test_connect_error_is_mapped(self):
        recorder = _Recorder(error=httpx.ConnectError("connection refused"))
        request = HttpExecutableRequest(method=HttpMethod.GET, url="https://api.example.com/down")

        with pytest.raises(TransportError, match="connection refused"):
            await _client(recorder).send(request, timeout=1)
