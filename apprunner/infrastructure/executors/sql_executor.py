"""SQL Execution Service - SqlExecutionPort 的 SQLAlchemy 实现

执行流程（在线程池中运行，不阻塞事件循环）：
    1. 打开 SSH 隧道（enable_ssh_tunnel 时，经 SshTunnelProvider）
    2. 用 NullPool 创建一次性引擎并建连
    3. 绑定参数执行只读查询，最多取 max_rows 行
    4. 关闭连接、dispose 引擎、关闭隧道

超时：postgres 连接带 statement_timeout，服务端到点取消语句；同时在工作线程里挂一个
定时器，到点调用 DBAPI 连接的 cancel() / interrupt()，让查询尽快返回并释放隧道。

步骤 1、2 获取的资源都登记在同一个 ExitStack 上，
成功、SQL 错误、建连失败或超时取消时都按相反顺序释放。

支持的引擎：postgres（psycopg2 驱动）。url_factory 可替换连接 URL 的构造方式（测试中指向 SQLite）。
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import URL, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from apprunner.domain.entities.executable_request import SqlConnectionTarget, SqlExecutableRequest
from apprunner.domain.entities.sql_query_config import is_read_only_statement
from apprunner.domain.exceptions import SqlExecutionError, SqlTimeoutError
from apprunner.domain.ports.sql_execution_port import SqlResult, SshTunnelProvider, TunnelEndpoint

logger = logging.getLogger(__name__)

POSTGRES_ALIASES = frozenset({"postgres", "postgresql", "pg"})

UrlFactory = Callable[[SqlConnectionTarget, TunnelEndpoint | None, int, int | None], URL | str]


def build_postgres_url(
    target: SqlConnectionTarget,
    endpoint: TunnelEndpoint | None,
    connect_timeout: int,
    statement_timeout_ms: int | None = None,
) -> URL:
    """构造 postgresql+psycopg2 连接 URL（隧道存在时连接隧道的本地端点）"""
    engine = (target.engine or "").strip().lower().replace("-", "_")
    if engine not in POSTGRES_ALIASES:
        raise SqlExecutionError(f"不支持的数据库引擎: {target.engine}")

    query: dict[str, str] = {
        "sslmode": "require" if target.use_ssl else "disable",
        "connect_timeout": str(connect_timeout),
    }
    for option in target.connection_options:
        query[option.key] = option.value
    if statement_timeout_ms is not None:
        setting = f"-c statement_timeout={statement_timeout_ms}"
        query["options"] = f"{query['options']} {setting}" if query.get("options") else setting

    return URL.create(
        "postgresql+psycopg2",
        username=target.username,
        password=target.password,
        host=endpoint.host if endpoint else target.host,
        port=endpoint.port if endpoint else target.port,
        database=target.database_name,
        query=query,
    )


def _cancel_query(dbapi_connection: Any, fired: threading.Event) -> None:
    """到点取消正在执行的语句：psycopg2 为 cancel()，sqlite3 为 interrupt()"""
    fired.set()
    for name in ("cancel", "interrupt"):
        method = getattr(dbapi_connection, name, None)
        if method is not None:
            try:
                method()
            except Exception as exc:
                logger.warning("SQL query cancel failed: %s", type(exc).__name__)
            return


class SqlAlchemyExecutionService:
    """Implements: SqlExecutionPort"""

    def __init__(
        self,
        *,
        tunnel_provider: SshTunnelProvider | None = None,
        max_rows: int = 1000,
        connect_timeout: int = 10,
        url_factory: UrlFactory = build_postgres_url,
    ) -> None:
        self.tunnel_provider = tunnel_provider
        self.max_rows = max_rows
        self.connect_timeout = connect_timeout
        self.url_factory = url_factory

    async def execute(self, request: SqlExecutableRequest, timeout: float) -> SqlResult:
        if not is_read_only_statement(request.statement):
            raise SqlExecutionError("只允许执行 SELECT / WITH 只读查询")
        return await asyncio.to_thread(self._execute_sync, request, timeout)

    def _execute_sync(self, request: SqlExecutableRequest, timeout: float) -> SqlResult:
        started = time.perf_counter()
        target = request.target
        fired = threading.Event()
        try:
            with contextlib.ExitStack() as stack:
                endpoint = None
                if target.enable_ssh_tunnel:
                    if self.tunnel_provider is None:
                        raise SqlExecutionError("Resource 启用了 SSH 隧道，但未配置隧道服务")
                    endpoint = stack.enter_context(self.tunnel_provider.open(target))

                engine = create_engine(
                    self.url_factory(target, endpoint, self.connect_timeout, int(timeout * 1000)),
                    poolclass=NullPool,
                )
                stack.callback(engine.dispose)
                connection = stack.enter_context(engine.connect())
                if engine.dialect.name == "postgresql":
                    connection = connection.execution_options(postgresql_readonly=True)

                # 建连耗时也计入时限，剩余时间到点后取消语句
                remaining = max(timeout - (time.perf_counter() - started), 0.0)
                timer = threading.Timer(
                    remaining, _cancel_query, args=(connection.connection.dbapi_connection, fired)
                )
                timer.daemon = True
                timer.start()
                stack.callback(timer.cancel)

                result = connection.execute(text(request.statement), request.parameters_dict())
                columns = list(result.keys())
                fetched = result.fetchmany(self.max_rows + 1)
        except SqlExecutionError:
            raise
        except SQLAlchemyError as exc:
            if fired.is_set():
                raise SqlTimeoutError(f"查询超过 {timeout}s，已取消") from exc
            # 只保留驱动的原始错误信息，不带 SQLAlchemy 附加的语句与参数
            detail = getattr(exc, "orig", None) or exc
            raise SqlExecutionError(f"{type(detail).__name__}: {detail}") from exc
        except OSError as exc:
            raise SqlExecutionError(f"连接失败: {exc}") from exc

        truncated = len(fetched) > self.max_rows
        rows: list[dict[str, Any]] = [dict(row._mapping) for row in fetched[: self.max_rows]]
        if truncated:
            logger.info("SQL result truncated at %d rows", self.max_rows)
        return SqlResult(
            columns=columns,
            rows=rows,
            row_count=len(rows),
            truncated=truncated,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
