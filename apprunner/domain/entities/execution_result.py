"""ExecutionResult - 一次出站调用的结果（成功或结构化失败）

失败是正常、可审计的结果，不是系统异常：网络错误、超时、非 2xx 状态码、SQL 错误
都以 ExecutionResult 的形式返回，并记录为 Run 的 Failed 终态。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    HTTP_STATUS = "http_status"
    SQL_ERROR = "sql_error"


@dataclass(frozen=True)
class ExecutionResult:
    succeeded: bool
    elapsed_ms: int = 0
    status_code: int | None = None
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: str | None = None
    truncated: bool = False
    row_count: int | None = None
    failure_kind: FailureKind | None = None
    error_message: str | None = None

    @classmethod
    def failure(
        cls,
        kind: FailureKind,
        message: str,
        *,
        elapsed_ms: int = 0,
        status_code: int | None = None,
        response_headers: dict[str, str] | None = None,
        response_body: str | None = None,
        truncated: bool = False,
    ) -> ExecutionResult:
        return cls(
            succeeded=False,
            elapsed_ms=elapsed_ms,
            status_code=status_code,
            response_headers=response_headers or {},
            response_body=response_body,
            truncated=truncated,
            failure_kind=kind,
            error_message=message,
        )

    def with_redacted(
        self,
        *,
        response_headers: dict[str, str],
        response_body: str | None,
        error_message: str | None,
    ) -> ExecutionResult:
        return replace(
            self,
            response_headers=response_headers,
            response_body=response_body,
            error_message=error_message,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "elapsed_ms": self.elapsed_ms,
            "status_code": self.status_code,
            "response_headers": dict(self.response_headers),
            "response_body": self.response_body,
            "truncated": self.truncated,
            "row_count": self.row_count,
            "failure_kind": self.failure_kind.value if self.failure_kind else None,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionResult:
        kind = data.get("failure_kind")
        return cls(
            succeeded=bool(data["succeeded"]),
            elapsed_ms=int(data.get("elapsed_ms") or 0),
            status_code=data.get("status_code"),
            response_headers=dict(data.get("response_headers") or {}),
            response_body=data.get("response_body"),
            truncated=bool(data.get("truncated", False)),
            row_count=data.get("row_count"),
            failure_kind=FailureKind(kind) if kind else None,
            error_message=data.get("error_message"),
        )
