"""HTTP 客户端抽象接口（Domain Port）- 隔离 Domain 与具体 HTTP 实现

职责:
- 发送一个完全解析的 HttpExecutableRequest
- 返回状态码、响应头、响应体（已按上限截断）与耗时

异常约定:
- TransportTimeoutError: 超时
- TransportError: DNS / 连接 / 协议错误
非 2xx 状态码不是异常，正常返回 HttpResponse。
"""

from dataclasses import dataclass, field
from typing import Protocol

from apprunner.domain.entities.executable_request import HttpExecutableRequest


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    truncated: bool = False
    elapsed_ms: int = 0

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClientPort(Protocol):
    async def send(self, request: HttpExecutableRequest, timeout: float) -> HttpResponse:
        """发送请求

        Raises:
            TransportTimeoutError: 超时
            TransportError: 网络错误
        """
        ...
