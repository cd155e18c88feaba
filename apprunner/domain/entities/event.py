"""DomainEvent 实体 - 不可变的审计事实

业务定义：
- 每次 Run 和每次 App 配置变更都会产生一个或多个事件
- 事件只追加，永不修改或删除
- 事件与其所属实体的最终状态在同一事务中落库
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4


class EntityType(str, Enum):
    APP = "app"
    RUN = "run"


@dataclass(frozen=True)
class DomainEvent:
    """领域事件

    属性说明：
    - event_id: 事件唯一 ID
    - event_type: 事件类型（如 RunCreatedEvent）
    - entity_type / entity_id: 事件所属实体
    - actor_user_id: 触发事件的用户
    - payload: 事件数据（JSON 可序列化，已脱敏）
    """

    event_id: str
    event_type: str
    entity_type: EntityType
    entity_id: str
    actor_user_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        *,
        event_type: str,
        entity_type: EntityType,
        entity_id: str,
        actor_user_id: str,
        payload: dict[str, Any] | None = None,
        occurred_at: datetime | None = None,
    ) -> DomainEvent:
        return cls(
            event_id=str(uuid4()),
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            payload=payload or {},
            occurred_at=occurred_at or datetime.now(UTC),
        )
