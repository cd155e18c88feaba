"""TransactionalEventStore 单元测试：原子写入与回滚"""

import pytest

from apprunner.application.services.event_store import TransactionalEventStore
from apprunner.domain.entities.app import App
from apprunner.domain.entities.event import EntityType
from apprunner.domain.entities.execution_result import ExecutionResult, FailureKind
from apprunner.domain.entities.run import Run
from apprunner.domain.exceptions import DomainError, NotFoundError, PersistenceError
from apprunner.infrastructure.database.repositories import (
    SQLAlchemyAppRepository,
    SQLAlchemyEventRepository,
    SQLAlchemyRunRepository,
)
from apprunner.infrastructure.database.transaction_manager import SQLAlchemyTransactionManager


class _ExplodingEventRepository:
    """第二条事件写入时失败"""

    def __init__(self, inner: SQLAlchemyEventRepository) -> None:
        self.inner = inner
        self.calls = 0

    def append(self, event) -> None:
        self.calls += 1
        if self.calls == 2:
            raise RuntimeError("disk full")
        self.inner.append(event)

    def list_by_entity(self, entity_type, entity_id):
        return self.inner.list_by_entity(entity_type, entity_id)


def _store(session, event_repository=None) -> TransactionalEventStore:
    return TransactionalEventStore(
        run_repository=SQLAlchemyRunRepository(session),
        app_repository=SQLAlchemyAppRepository(session),
        event_repository=event_repository or SQLAlchemyEventRepository(session),
        transaction_manager=SQLAlchemyTransactionManager(session),
    )


def _finished_run() -> Run:
    run = Run.create(app_id="app-1", user_id="user-1")
    return run.fail(None, ExecutionResult.failure(FailureKind.TIMEOUT, "请求超时"))


def test_commit_run_writes_row_and_events(db_session, session_factory):
    run = _finished_run()

    committed = _store(db_session).commit_run(run)

    assert committed.uncommitted_events == ()
    with session_factory() as other:
        assert SQLAlchemyRunRepository(other).get_by_id(run.id).status == run.status
        events = SQLAlchemyEventRepository(other).list_by_entity(EntityType.RUN, run.id)
        assert [e.event_type for e in events] == ["RunCreatedEvent", "RunFailedEvent"]


def test_failure_rolls_back_everything(db_session, session_factory):
    """Given: 第二条事件写入失败
    When: commit_run
    Then: PersistenceError，Run 行和第一条事件都不可见"""
    run = _finished_run()
    exploding = _ExplodingEventRepository(SQLAlchemyEventRepository(db_session))

    with pytest.raises(PersistenceError):
        _store(db_session, exploding).commit_run(run)

    with session_factory() as other:
        with pytest.raises(NotFoundError):
            SQLAlchemyRunRepository(other).get_by_id(run.id)
        assert SQLAlchemyEventRepository(other).list_by_entity(EntityType.RUN, run.id) == []


def test_pending_run_is_not_persisted(db_session):
    with pytest.raises(DomainError, match="终态"):
        _store(db_session).commit_run(Run.create(app_id="app-1", user_id="user-1"))


def test_commit_app_requires_events(db_session, http_resource):
    app = App.create(folder_id="f", resource=http_resource, name="A", actor_user_id="u")
    app = app.mark_events_committed()

    with pytest.raises(DomainError):
        _store(db_session).commit_app(app)
