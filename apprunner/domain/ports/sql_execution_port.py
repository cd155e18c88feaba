"""SQL 执行服务抽象接口（Domain Port）

实现要求：
- 连接（以及可选的 SSH 隧道）作为一个作用域资源获取，任何退出路径都必须释放
- 语句参数一律绑定，不做字符串拼接
- 失败抛 SqlExecutionError
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Protocol

from apprunner.domain.entities.executable_request import SqlConnectionTarget, SqlExecutableRequest


@dataclass(frozen=True)
class SqlResult:
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    truncated: bool = False
    elapsed_ms: int = 0


@dataclass(frozen=True)
class TunnelEndpoint:
    """隧道在本地暴露的地址，连接时替换 Resource 的 host/port"""

    host: str
    port: int


class SshTunnelProvider(Protocol):
    def open(self, target: SqlConnectionTarget) -> AbstractContextManager[TunnelEndpoint]:
        """打开隧道；上下文退出时关闭"""
        ...


class SqlExecutionPort(Protocol):
    async def execute(self, request: SqlExecutableRequest, timeout: float) -> SqlResult:
        """执行只读查询

        Raises:
            SqlExecutionError: 建连、隧道或语句执行失败
        """
        ...
