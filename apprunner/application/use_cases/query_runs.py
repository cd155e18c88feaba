"""Run 查询用例（只读）

- GetRunUseCase: 按 ID 获取 Run
- ListRunsUseCase: 按 App 分页列出 Run，可按状态过滤，返回总数
- ListRunsByStatusUseCase: 跨 App 按状态分页列出 Run
- ListRunEventsUseCase: 列出 Run 的审计事件
"""

from __future__ import annotations

from dataclasses import dataclass

from apprunner.domain.entities.event import DomainEvent, EntityType
from apprunner.domain.entities.run import Run
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.ports.app_repository import AppRepository
from apprunner.domain.ports.event_repository import EventRepository
from apprunner.domain.ports.run_repository import RunRepository
from apprunner.domain.value_objects.run_status import RunStatus

MAX_TAKE = 200


@dataclass(frozen=True)
class RunPage:
    items: list[Run]
    total: int
    skip: int
    take: int


def _check_paging(skip: int, take: int) -> None:
    if skip < 0:
        raise ValidationError(f"skip 不能为负数: {skip}")
    if not 0 < take <= MAX_TAKE:
        raise ValidationError(f"take 必须在 1 到 {MAX_TAKE} 之间: {take}")


def parse_status(status: str) -> RunStatus:
    try:
        return RunStatus(status.strip().lower())
    except ValueError as exc:
        raise ValidationError(f"未知的 Run 状态: {status}") from exc


class GetRunUseCase:
    def __init__(self, run_repository: RunRepository) -> None:
        self.run_repository = run_repository

    def execute(self, run_id: str) -> Run:
        return self.run_repository.get_by_id(run_id)


class ListRunsUseCase:
    def __init__(self, run_repository: RunRepository, app_repository: AppRepository) -> None:
        self.run_repository = run_repository
        self.app_repository = app_repository

    def execute(
        self,
        app_id: str,
        *,
        status: str | None = None,
        skip: int = 0,
        take: int = 50,
    ) -> RunPage:
        """分页列出 App 的 Run

        Raises:
            NotFoundError: App 不存在
            ValidationError: 分页参数或状态非法
        """
        _check_paging(skip, take)
        status_filter = parse_status(status) if status else None

        self.app_repository.get_by_id(app_id)
        items = self.run_repository.list_by_app(app_id, status=status_filter, skip=skip, take=take)
        total = self.run_repository.count_by_app(app_id, status=status_filter)
        return RunPage(items=items, total=total, skip=skip, take=take)


class ListRunsByStatusUseCase:
    def __init__(self, run_repository: RunRepository) -> None:
        self.run_repository = run_repository

    def execute(self, status: str, *, skip: int = 0, take: int = 50) -> RunPage:
        """跨 App 分页列出某一状态的 Run（例如排查所有 FAILED）

        Raises:
            ValidationError: 分页参数或状态非法
        """
        _check_paging(skip, take)
        status_filter = parse_status(status)
        items = self.run_repository.list_by_status(status_filter, skip=skip, take=take)
        total = self.run_repository.count_by_status(status_filter)
        return RunPage(items=items, total=total, skip=skip, take=take)


class ListRunEventsUseCase:
    def __init__(self, run_repository: RunRepository, event_repository: EventRepository) -> None:
        self.run_repository = run_repository
        self.event_repository = event_repository

    def execute(self, run_id: str) -> list[DomainEvent]:
        self.run_repository.get_by_id(run_id)
        return self.event_repository.list_by_entity(EntityType.RUN, run_id)
