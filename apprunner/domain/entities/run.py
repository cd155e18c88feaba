"""Run 聚合 - App 的一次调用实例

业务定义：
- 每次用户触发 App 就是一个 Run，恰好一次出站调用，不自动重试
- 生命周期：PENDING → SUCCEEDED | FAILED，终态只记录一次
- 进入终态时附带脱敏后的 ExecutableRequest 与执行结果

事件溯源：
- Run 是一个不可变的累加器：状态 + 未提交事件元组
- create / succeed / fail 都是纯函数，返回新实例并追加对应事件
- TransactionalEventStore 在同一事务中写入 Run 行和全部未提交事件
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

from apprunner.domain.entities.event import DomainEvent
from apprunner.domain.entities.executable_request import ExecutableRequest
from apprunner.domain.entities.execution_result import ExecutionResult
from apprunner.domain.events import run_events
from apprunner.domain.exceptions import DomainError
from apprunner.domain.value_objects.run_status import RunStatus


@dataclass(frozen=True)
class Run:
    """Run 聚合根

    属性说明：
    - app_id / user_id: 被调用的 App 与发起调用的用户
    - input_values: 提交的输入（[{title, value}]，secret 已遮盖）
    - executable_request: 脱敏后的最终请求（终态时设置）
    - result: 执行结果（终态时设置）
    - error_message: 失败原因（已脱敏）
    """

    id: str
    app_id: str
    user_id: str
    status: RunStatus
    input_values: tuple[Mapping[str, str], ...] = ()
    executable_request: ExecutableRequest | None = None
    result: ExecutionResult | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None
    uncommitted_events: tuple[DomainEvent, ...] = ()

    @classmethod
    def create(
        cls,
        *,
        app_id: str,
        user_id: str,
        input_values: Iterable[Mapping[str, str]] = (),
    ) -> Run:
        """创建 PENDING 状态的 Run，并记录 RunCreatedEvent

        抛出：
            DomainError: app_id 或 user_id 为空
        """
        if not app_id or not app_id.strip():
            raise DomainError("app_id 不能为空")
        if not user_id or not user_id.strip():
            raise DomainError("user_id 不能为空")

        now = datetime.now(UTC)
        run = cls(
            id=str(uuid4()),
            app_id=app_id.strip(),
            user_id=user_id.strip(),
            status=RunStatus.PENDING,
            input_values=tuple(dict(item) for item in input_values),
            created_at=now,
            started_at=now,
        )
        return replace(run, uncommitted_events=(run_events.run_created(run),))

    def succeed(self, request: ExecutableRequest, result: ExecutionResult) -> Run:
        """PENDING → SUCCEEDED"""
        return self._finish(RunStatus.SUCCEEDED, request, result, error_message=None)

    def fail(
        self,
        request: ExecutableRequest | None,
        result: ExecutionResult | None,
        error_message: str | None = None,
    ) -> Run:
        """PENDING → FAILED，error_message 缺省取结果里的错误信息"""
        message = error_message or (result.error_message if result else None) or "执行失败"
        return self._finish(RunStatus.FAILED, request, result, error_message=message)

    def complete(self, request: ExecutableRequest, result: ExecutionResult) -> Run:
        """按执行结果进入对应终态"""
        if result.succeeded:
            return self.succeed(request, result)
        return self.fail(request, result)

    def _finish(
        self,
        target: RunStatus,
        request: ExecutableRequest | None,
        result: ExecutionResult | None,
        *,
        error_message: str | None,
    ) -> Run:
        if not self.status.can_transition_to(target):
            raise DomainError(
                f"Run 状态不能从 {self.status.value} 转换到 {target.value}（终态只能记录一次）"
            )
        if target is RunStatus.SUCCEEDED and (result is None or not result.succeeded):
            raise DomainError("只有成功的执行结果才能使 Run 进入 SUCCEEDED")

        finished = replace(
            self,
            status=target,
            executable_request=request,
            result=result,
            error_message=error_message,
            completed_at=datetime.now(UTC),
        )
        return replace(
            finished,
            uncommitted_events=self.uncommitted_events + (run_events.run_finished(finished),),
        )

    def mark_events_committed(self) -> Run:
        return replace(self, uncommitted_events=())

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()
