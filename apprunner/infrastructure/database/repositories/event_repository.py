"""SQLAlchemy Event Repository 实现（只追加）"""

import json

from sqlalchemy import select
from sqlalchemy.orm import Session

from apprunner.domain.entities.event import DomainEvent, EntityType
from apprunner.infrastructure.database.models import EventModel
from apprunner.infrastructure.database.repositories.datetime_utils import to_aware, to_naive


class SQLAlchemyEventRepository:
    """Implements: EventRepository Protocol"""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, event: DomainEvent) -> None:
        self.session.add(
            EventModel(
                event_id=event.event_id,
                event_type=event.event_type,
                entity_type=event.entity_type.value,
                entity_id=event.entity_id,
                event_data=json.dumps(event.payload, ensure_ascii=False, default=str),
                occurred_at=to_naive(event.occurred_at),
                actor_user_id=event.actor_user_id,
            )
        )
        self.session.flush()

    def list_by_entity(self, entity_type: EntityType, entity_id: str) -> list[DomainEvent]:
        stmt = (
            select(EventModel)
            .where(EventModel.entity_type == entity_type.value, EventModel.entity_id == entity_id)
            .order_by(EventModel.occurred_at, EventModel.id)
        )
        return [
            DomainEvent(
                event_id=model.event_id,
                event_type=model.event_type,
                entity_type=EntityType(model.entity_type),
                entity_id=model.entity_id,
                actor_user_id=model.actor_user_id,
                payload=json.loads(model.event_data),
                occurred_at=to_aware(model.occurred_at),
            )
            for model in self.session.scalars(stmt).all()
        ]
