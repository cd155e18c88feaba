"""EventRepository Port - 只追加的审计事件表"""

from typing import Protocol

from apprunner.domain.entities.event import DomainEvent, EntityType


class EventRepository(Protocol):
    def append(self, event: DomainEvent) -> None:
        """追加一条事件，只 flush"""
        ...

    def list_by_entity(self, entity_type: EntityType, entity_id: str) -> list[DomainEvent]:
        """按实体列出事件（occurred_at 升序）"""
        ...
