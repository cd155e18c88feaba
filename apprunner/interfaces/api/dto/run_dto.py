"""Run DTO（Data Transfer Objects）

定义 Run 相关的请求和响应模型。响应中的请求描述与结果均为脱敏后的副本。
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from apprunner.domain.entities.event import DomainEvent
from apprunner.domain.entities.run import Run


class InputValueDto(BaseModel):
    title: str
    value: Any = None


class CreateRunRequest(BaseModel):
    """触发 App 执行的请求体

    字段：
    - input_values: [{title, value}]，未知 title 忽略
    - dynamic_body: 运行时 JSON 请求体（仅对启用了动态 JSON 请求体的 App 有效）；
      可以是 JSON 文本，也可以直接是 JSON 值
    """

    input_values: list[InputValueDto] = Field(default_factory=list)
    dynamic_body: Any = None

    def input_pairs(self) -> list[tuple[str, Any]]:
        return [(item.title, item.value) for item in self.input_values]

    def dynamic_body_text(self) -> str | None:
        if self.dynamic_body is None or isinstance(self.dynamic_body, str):
            return self.dynamic_body
        return json.dumps(self.dynamic_body, ensure_ascii=False)


class RunResponse(BaseModel):
    """Run 响应 DTO"""

    id: str
    app_id: str
    user_id: str
    status: str
    input_values: list[dict[str, str]] = Field(default_factory=list)
    executable_request: dict[str, Any] | None = None
    result: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, run: Run) -> RunResponse:
        return cls(
            id=run.id,
            app_id=run.app_id,
            user_id=run.user_id,
            status=run.status.value,
            input_values=[dict(item) for item in run.input_values],
            executable_request=run.executable_request.to_dict() if run.executable_request else None,
            result=run.result.to_dict() if run.result else None,
            error_message=run.error_message,
            created_at=run.created_at,
            started_at=run.started_at,
            completed_at=run.completed_at,
        )


class RunListResponse(BaseModel):
    items: list[RunResponse]
    total: int
    skip: int
    take: int


class RunEventResponse(BaseModel):
    event_id: str
    event_type: str
    entity_id: str
    actor_user_id: str
    occurred_at: datetime
    event_data: dict[str, Any]

    @classmethod
    def from_entity(cls, event: DomainEvent) -> RunEventResponse:
        return cls(
            event_id=event.event_id,
            event_type=event.event_type,
            entity_id=event.entity_id,
            actor_user_id=event.actor_user_id,
            occurred_at=event.occurred_at,
            event_data=event.payload,
        )
