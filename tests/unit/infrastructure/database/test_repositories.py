"""SQLAlchemy Repository 单元测试

测试策略:
1. 内存 SQLite，每个测试独立
2. 领域实体 ↔ ORM 模型往返转换
3. 不存在的实体抛 NotFoundError
4. Repository 只 flush，不 commit
"""

import pytest

from apprunner.domain.entities.app import App
from apprunner.domain.entities.event import DomainEvent, EntityType
from apprunner.domain.entities.input import Input
from apprunner.domain.entities.sql_query_config import (
    SqlFilter,
    SqlFilterOperator,
    SqlOrderBy,
    SqlQueryConfig,
    SqlSortDirection,
)
from apprunner.domain.exceptions import NotFoundError
from apprunner.domain.value_objects.key_value import KeyValuePair
from apprunner.infrastructure.database.repositories import (
    SQLAlchemyAppRepository,
    SQLAlchemyEventRepository,
    SQLAlchemyResourceRepository,
)


class TestResourceRepository:
    def test_http_resource_round_trip(self, db_session, http_resource):
        repo = SQLAlchemyResourceRepository(db_session)

        repo.save(http_resource)
        loaded = repo.get_by_id(http_resource.id)

        assert loaded.config == http_resource.config
        assert loaded.kind == http_resource.kind
        assert loaded.created_at == http_resource.created_at

    def test_sql_resource_round_trip(self, db_session, sql_resource):
        repo = SQLAlchemyResourceRepository(db_session)

        repo.save(sql_resource)

        assert repo.get_by_id(sql_resource.id).config == sql_resource.config

    def test_missing_resource(self, db_session):
        with pytest.raises(NotFoundError, match="Resource"):
            SQLAlchemyResourceRepository(db_session).get_by_id("nope")


class TestAppRepository:
    def test_http_app_round_trip(self, db_session, http_resource):
        SQLAlchemyResourceRepository(db_session).save(http_resource)
        app = App.create(
            folder_id="folder-1",
            resource=http_resource,
            name="Create ticket",
            actor_user_id="u",
            inputs=[
                Input.create(title="title", required=True, max_length=80),
                Input.create(title="priority", type="select", options=["low", "high"]),
            ],
            http_method="POST",
            url_path="/tickets",
            body=[KeyValuePair("title", "{{input.title}}")],
            use_json_body=False,
        )
        repo = SQLAlchemyAppRepository(db_session)

        repo.save(app)
        loaded = repo.get_by_id(app.id)

        assert loaded == app.mark_events_committed()

    def test_sql_app_round_trip(self, db_session, sql_resource):
        SQLAlchemyResourceRepository(db_session).save(sql_resource)
        sql_config = SqlQueryConfig.gui(
            table="orders",
            columns=["id"],
            filters=[SqlFilter("status", SqlFilterOperator.NOT_IN, "a,b")],
            order_by=[SqlOrderBy("id", SqlSortDirection.DESC)],
            limit=10,
        )
        app = App.create(
            folder_id="folder-1",
            resource=sql_resource,
            name="Orders",
            actor_user_id="u",
            sql_config=sql_config,
        )
        repo = SQLAlchemyAppRepository(db_session)

        repo.save(app)

        assert repo.get_by_id(app.id).sql_config == sql_config

    def test_save_overwrites_existing_row(self, db_session, http_resource):
        SQLAlchemyResourceRepository(db_session).save(http_resource)
        app = App.create(folder_id="f", resource=http_resource, name="v1", actor_user_id="u")
        repo = SQLAlchemyAppRepository(db_session)
        repo.save(app)

        repo.save(app.update(resource=http_resource, actor_user_id="u", name="v2"))

        assert repo.get_by_id(app.id).name == "v2"

    def test_find_missing_app_returns_none(self, db_session):
        assert SQLAlchemyAppRepository(db_session).find_by_id("nope") is None


class TestEventRepository:
    def test_append_and_list_in_order(self, db_session):
        repo = SQLAlchemyEventRepository(db_session)
        first = DomainEvent.create(
            event_type="RunCreatedEvent",
            entity_type=EntityType.RUN,
            entity_id="run-1",
            actor_user_id="u",
            payload={"input_values": [{"title": "q", "value": "中文"}]},
        )
        second = DomainEvent.create(
            event_type="RunSucceededEvent",
            entity_type=EntityType.RUN,
            entity_id="run-1",
            actor_user_id="u",
        )
        other = DomainEvent.create(
            event_type="AppCreatedEvent",
            entity_type=EntityType.APP,
            entity_id="run-1",
            actor_user_id="u",
        )

        for event in (first, second, other):
            repo.append(event)
        events = repo.list_by_entity(EntityType.RUN, "run-1")

        assert [e.event_id for e in events] == [first.event_id, second.event_id]
        assert events[0].payload == first.payload
        assert events[0].occurred_at == first.occurred_at
