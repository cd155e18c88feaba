"""ExecutionDispatcher - 把未脱敏的 ExecutableRequest 交给对应的传输端口并捕获结果

失败分类（全部作为 ExecutionResult 返回，不越过本边界抛出）：
- timeout:        超过 http_timeout / sql_timeout
- network_error:  DNS、连接拒绝等传输错误
- http_status:    收到非 2xx 响应（保留响应体）
- sql_error:      建连、隧道或语句执行失败

超时由 asyncio.wait_for 强制：被取消的出站调用也会得到一个 Failed 结果，
后续仍然走 Run 终态与审计持久化。
"""

from __future__ import annotations

import asyncio
import json
import logging
import time

from apprunner.domain.entities.executable_request import (
    ExecutableRequest,
    HttpExecutableRequest,
    SqlExecutableRequest,
)
from apprunner.domain.entities.execution_result import ExecutionResult, FailureKind
from apprunner.domain.exceptions import (
    SqlExecutionError,
    SqlTimeoutError,
    TransportError,
    TransportTimeoutError,
)
from apprunner.domain.ports.http_client_port import HttpClientPort
from apprunner.domain.ports.sql_execution_port import SqlExecutionPort

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class ExecutionDispatcher:
    def __init__(
        self,
        *,
        http_client: HttpClientPort,
        sql_executor: SqlExecutionPort | None = None,
        http_timeout: float = 30.0,
        sql_timeout: float = 30.0,
    ) -> None:
        self.http_client = http_client
        self.sql_executor = sql_executor
        self.http_timeout = http_timeout
        self.sql_timeout = sql_timeout

    async def dispatch(self, request: ExecutableRequest) -> ExecutionResult:
        match request:
            case HttpExecutableRequest():
                return await self._dispatch_http(request)
            case SqlExecutableRequest():
                return await self._dispatch_sql(request)
            case _:
                raise TypeError(f"unsupported request: {type(request).__name__}")

    async def _dispatch_http(self, request: HttpExecutableRequest) -> ExecutionResult:
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.http_client.send(request, self.http_timeout), timeout=self.http_timeout
            )
        except (TimeoutError, TransportTimeoutError):
            logger.warning("HTTP %s timed out after %ss", request.method.value, self.http_timeout)
            return ExecutionResult.failure(
                FailureKind.TIMEOUT,
                f"请求超时（{self.http_timeout}s）",
                elapsed_ms=_elapsed_ms(started),
            )
        except TransportError as exc:
            logger.warning("HTTP %s transport error: %s", request.method.value, type(exc).__name__)
            return ExecutionResult.failure(
                FailureKind.NETWORK_ERROR, f"网络错误: {exc}", elapsed_ms=_elapsed_ms(started)
            )
        except Exception as exc:
            logger.error("HTTP dispatch failed unexpectedly: %s", type(exc).__name__)
            return ExecutionResult.failure(
                FailureKind.NETWORK_ERROR,
                f"网络错误: {type(exc).__name__}: {exc}",
                elapsed_ms=_elapsed_ms(started),
            )

        elapsed = response.elapsed_ms or _elapsed_ms(started)
        if not response.is_success:
            return ExecutionResult.failure(
                FailureKind.HTTP_STATUS,
                f"HTTP 状态码 {response.status_code}",
                elapsed_ms=elapsed,
                status_code=response.status_code,
                response_headers=dict(response.headers),
                response_body=response.body,
                truncated=response.truncated,
            )
        return ExecutionResult(
            succeeded=True,
            elapsed_ms=elapsed,
            status_code=response.status_code,
            response_headers=dict(response.headers),
            response_body=response.body,
            truncated=response.truncated,
        )

    async def _dispatch_sql(self, request: SqlExecutableRequest) -> ExecutionResult:
        started = time.perf_counter()
        if self.sql_executor is None:
            return ExecutionResult.failure(FailureKind.SQL_ERROR, "未配置 SQL 执行服务")
        try:
            result = await asyncio.wait_for(
                self.sql_executor.execute(request, self.sql_timeout), timeout=self.sql_timeout
            )
        except (TimeoutError, SqlTimeoutError):
            logger.warning("SQL query timed out after %ss", self.sql_timeout)
            return ExecutionResult.failure(
                FailureKind.TIMEOUT,
                f"SQL 执行超时（{self.sql_timeout}s）",
                elapsed_ms=_elapsed_ms(started),
            )
        except SqlExecutionError as exc:
            logger.warning("SQL execution failed: %s", type(exc).__name__)
            return ExecutionResult.failure(
                FailureKind.SQL_ERROR, f"SQL 执行失败: {exc}", elapsed_ms=_elapsed_ms(started)
            )
        except Exception as exc:
            logger.error("SQL dispatch failed unexpectedly: %s", type(exc).__name__)
            return ExecutionResult.failure(
                FailureKind.SQL_ERROR,
                f"SQL 执行失败: {type(exc).__name__}: {exc}",
                elapsed_ms=_elapsed_ms(started),
            )

        body = json.dumps(
            {"columns": result.columns, "rows": result.rows},
            ensure_ascii=False,
            default=str,
        )
        return ExecutionResult(
            succeeded=True,
            elapsed_ms=result.elapsed_ms or _elapsed_ms(started),
            response_body=body,
            truncated=result.truncated,
            row_count=result.row_count,
        )
