"""Run 生命周期事件

- RunCreatedEvent：Run 创建（记录输入值，secret 输入已遮盖）
- RunSucceededEvent / RunFailedEvent：终态，附带脱敏后的请求与执行结果
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from apprunner.domain.entities.event import DomainEvent, EntityType
from apprunner.domain.value_objects.run_status import RunStatus

if TYPE_CHECKING:
    from apprunner.domain.entities.run import Run

RUN_CREATED = "RunCreatedEvent"
RUN_SUCCEEDED = "RunSucceededEvent"
RUN_FAILED = "RunFailedEvent"


def run_created(run: Run) -> DomainEvent:
    return DomainEvent.create(
        event_type=RUN_CREATED,
        entity_type=EntityType.RUN,
        entity_id=run.id,
        actor_user_id=run.user_id,
        payload={
            "app_id": run.app_id,
            "status": run.status.value,
            "input_values": [dict(item) for item in run.input_values],
        },
        occurred_at=run.created_at,
    )


def run_finished(run: Run) -> DomainEvent:
    """终态事件，事件类型由 Run 的状态决定"""
    return DomainEvent.create(
        event_type=RUN_SUCCEEDED if run.status is RunStatus.SUCCEEDED else RUN_FAILED,
        entity_type=EntityType.RUN,
        entity_id=run.id,
        actor_user_id=run.user_id,
        payload={
            "app_id": run.app_id,
            "status": run.status.value,
            "executable_request": run.executable_request.to_dict() if run.executable_request else None,
            "result": run.result.to_dict() if run.result else None,
            "error_message": run.error_message,
        },
        occurred_at=run.completed_at,
    )
