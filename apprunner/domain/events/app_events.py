"""App 配置变更事件

事件数据是 App 配置快照；凭据类 header / 参数的值按脱敏规则遮盖后再写入。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from apprunner.domain.entities.event import DomainEvent, EntityType

if TYPE_CHECKING:
    from apprunner.domain.entities.app import App

APP_CREATED = "AppCreatedEvent"
APP_UPDATED = "AppUpdatedEvent"


def app_created(app: App, actor_user_id: str) -> DomainEvent:
    return DomainEvent.create(
        event_type=APP_CREATED,
        entity_type=EntityType.APP,
        entity_id=app.id,
        actor_user_id=actor_user_id,
        payload={"app": app.to_public_dict()},
        occurred_at=app.created_at,
    )


def app_updated(before: App, after: App, actor_user_id: str) -> DomainEvent:
    old, new = before.to_public_dict(), after.to_public_dict()
    changed = sorted(key for key in new if key != "id" and old.get(key) != new.get(key))
    return DomainEvent.create(
        event_type=APP_UPDATED,
        entity_type=EntityType.APP,
        entity_id=after.id,
        actor_user_id=actor_user_id,
        payload={"changed_fields": changed, "app": new},
        occurred_at=after.updated_at,
    )
