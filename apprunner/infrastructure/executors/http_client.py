"""HTTP Httpx Adapter - HttpClientPort 的 httpx 实现

职责:
- 把 HttpExecutableRequest 转换为 httpx 请求并发送
- 请求体编码：动态 JSON 原样发送；键值对按 use_json_body 选择 JSON（保留数字/布尔/null 类型）
  或 application/x-www-form-urlencoded；GET / DELETE / HEAD 不发送请求体
- 流式读取响应体，超过 max_response_bytes 截断并标记
- httpx 异常转换为 TransportTimeoutError / TransportError

transport 参数用于测试注入 httpx.MockTransport。
"""

from __future__ import annotations

import json
import logging
import math
import time
from typing import Any

import httpx

from apprunner.domain.entities.executable_request import HttpExecutableRequest
from apprunner.domain.exceptions import TransportError, TransportTimeoutError
from apprunner.domain.ports.http_client_port import HttpResponse
from apprunner.domain.value_objects.key_value import KeyValuePair

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def coerce_json_value(value: str) -> Any:
    """按 JSON 类型解释键值对的值：整数 → 浮点数 → 布尔 → null → 字符串"""
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(number):
            return number
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if text == "null":
        return None
    return value


def build_body(request: HttpExecutableRequest) -> tuple[bytes | None, str | None]:
    """返回 (请求体字节, Content-Type)；无请求体时为 (None, None)"""
    if not request.method.allows_body():
        return None, None
    if request.raw_body is not None:
        return request.raw_body.encode("utf-8"), JSON_CONTENT_TYPE
    if not request.body:
        return None, None
    if request.use_json_body:
        payload = {pair.key: coerce_json_value(pair.value) for pair in request.body}
        return json.dumps(payload, ensure_ascii=False).encode("utf-8"), JSON_CONTENT_TYPE
    form = httpx.QueryParams([(pair.key, pair.value) for pair in request.body])
    return str(form).encode("utf-8"), FORM_CONTENT_TYPE


def _has_header(headers: tuple[KeyValuePair, ...], name: str) -> bool:
    return any(pair.key.lower() == name.lower() for pair in headers)


class HttpxHttpClient:
    """Implements: HttpClientPort"""

    def __init__(
        self,
        *,
        max_response_bytes: int = 1_048_576,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.max_response_bytes = max_response_bytes
        self._transport = transport

    async def send(self, request: HttpExecutableRequest, timeout: float) -> HttpResponse:
        content, content_type = build_body(request)
        headers = [(pair.key, pair.value) for pair in request.headers]
        if content_type and not _has_header(request.headers, "content-type"):
            headers.append(("Content-Type", content_type))

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                http_request = client.build_request(
                    request.method.value,
                    request.url,
                    params=[(pair.key, pair.value) for pair in request.url_parameters],
                    headers=headers,
                    content=content,
                )
                response = await client.send(http_request, stream=True)
                try:
                    body, truncated = await self._read_capped(response)
                finally:
                    await response.aclose()
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(f"请求超时（{timeout}s）") from exc
        except httpx.InvalidURL as exc:
            raise TransportError(f"URL 非法: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if truncated:
            logger.info(
                "response body truncated at %d bytes (%s %s)",
                self.max_response_bytes,
                request.method.value,
                response.status_code,
            )
        return HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=body.decode(response.encoding or "utf-8", errors="replace"),
            truncated=truncated,
            elapsed_ms=elapsed_ms,
        )

    async def _read_capped(self, response: httpx.Response) -> tuple[bytes, bool]:
        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            remaining = self.max_response_bytes - len(buffer)
            if len(chunk) > remaining:
                buffer.extend(chunk[:remaining])
                return bytes(buffer), True
            buffer.extend(chunk)
        return bytes(buffer), False
