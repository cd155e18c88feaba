"""Run 查询用例单元测试：分页、状态过滤、审计事件"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from apprunner.application.use_cases.query_runs import (
    GetRunUseCase,
    ListRunEventsUseCase,
    ListRunsByStatusUseCase,
    ListRunsUseCase,
)
from apprunner.domain.entities.app import App
from apprunner.domain.entities.executable_request import HttpExecutableRequest
from apprunner.domain.entities.execution_result import ExecutionResult, FailureKind
from apprunner.domain.entities.run import Run
from apprunner.domain.exceptions import NotFoundError, ValidationError
from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.run_status import RunStatus
from apprunner.infrastructure.database.repositories import (
    SQLAlchemyAppRepository,
    SQLAlchemyEventRepository,
    SQLAlchemyResourceRepository,
    SQLAlchemyRunRepository,
)

REQUEST = HttpExecutableRequest(method=HttpMethod.GET, url="https://api.example.com/")


@pytest.fixture
def app_with_runs(db_session, http_resource):
    """一个 App + 3 个 Run（成功、失败、成功，created_at 递增）"""
    SQLAlchemyResourceRepository(db_session).save(http_resource)
    app = App.create(folder_id="f", resource=http_resource, name="A", actor_user_id="u")
    SQLAlchemyAppRepository(db_session).save(app)

    outcomes = [
        ExecutionResult(succeeded=True, status_code=200),
        ExecutionResult.failure(FailureKind.HTTP_STATUS, "HTTP 状态码 500", status_code=500),
        ExecutionResult(succeeded=True, status_code=201),
    ]
    base = datetime(2024, 1, 1, tzinfo=UTC)
    runs = []
    for index, result in enumerate(outcomes):
        run = Run.create(app_id=app.id, user_id="user-1").complete(REQUEST, result)
        run = replace(run, created_at=base + timedelta(minutes=index))
        SQLAlchemyRunRepository(db_session).save(run)
        for event in run.uncommitted_events:
            SQLAlchemyEventRepository(db_session).append(event)
        runs.append(run)
    db_session.commit()
    return app, runs


def _list_use_case(db_session) -> ListRunsUseCase:
    return ListRunsUseCase(SQLAlchemyRunRepository(db_session), SQLAlchemyAppRepository(db_session))


def test_list_newest_first_with_total(db_session, app_with_runs):
    app, runs = app_with_runs

    page = _list_use_case(db_session).execute(app.id, skip=0, take=2)

    assert page.total == 3
    assert [run.id for run in page.items] == [runs[2].id, runs[1].id]


def test_list_second_page(db_session, app_with_runs):
    app, runs = app_with_runs

    page = _list_use_case(db_session).execute(app.id, skip=2, take=2)

    assert [run.id for run in page.items] == [runs[0].id]


def test_list_filters_by_status(db_session, app_with_runs):
    app, runs = app_with_runs

    page = _list_use_case(db_session).execute(app.id, status="FAILED")

    assert page.total == 1
    assert page.items[0].id == runs[1].id
    assert page.items[0].status is RunStatus.FAILED
    assert page.items[0].result.status_code == 500


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"skip": -1}, "skip"),
        ({"take": 0}, "take"),
        ({"take": 1000}, "take"),
        ({"status": "running"}, "状态"),
    ],
)
def test_list_rejects_bad_arguments(db_session, app_with_runs, kwargs, message):
    app, _ = app_with_runs

    with pytest.raises(ValidationError, match=message):
        _list_use_case(db_session).execute(app.id, **kwargs)


def test_list_unknown_app(db_session):
    with pytest.raises(NotFoundError):
        _list_use_case(db_session).execute("missing")


def test_get_run_round_trips_request_and_result(db_session, app_with_runs):
    _, runs = app_with_runs

    run = GetRunUseCase(SQLAlchemyRunRepository(db_session)).execute(runs[0].id)

    assert run.executable_request == REQUEST
    assert run.result.status_code == 200
    assert run.status is RunStatus.SUCCEEDED


def test_list_run_events(db_session, app_with_runs):
    _, runs = app_with_runs

    events = ListRunEventsUseCase(
        SQLAlchemyRunRepository(db_session), SQLAlchemyEventRepository(db_session)
    ).execute(runs[1].id)

    assert [e.event_type for e in events] == ["RunCreatedEvent", "RunFailedEvent"]
    assert events[1].payload["error_message"] == "HTTP 状态码 500"


def test_list_by_status_spans_apps(db_session, app_with_runs, http_resource):
    """Given: 两个 App 各有一个 FAILED 的 Run
    When: 按 failed 跨 App 列出
    Then: 两个 Run 都在结果中，最新在前"""
    first_app, runs = app_with_runs
    other = App.create(folder_id="f", resource=http_resource, name="B", actor_user_id="u")
    SQLAlchemyAppRepository(db_session).save(other)
    failed = Run.create(app_id=other.id, user_id="user-2").complete(
        REQUEST, ExecutionResult.failure(FailureKind.TIMEOUT, "请求超时（30s）")
    )
    failed = replace(failed, created_at=datetime(2024, 2, 1, tzinfo=UTC))
    SQLAlchemyRunRepository(db_session).save(failed)
    db_session.commit()

    page = ListRunsByStatusUseCase(SQLAlchemyRunRepository(db_session)).execute("failed")

    assert page.total == 2
    assert [run.id for run in page.items] == [failed.id, runs[1].id]
    assert {run.app_id for run in page.items} == {first_app.id, other.id}


def test_list_by_status_requires_known_status(db_session):
    with pytest.raises(ValidationError, match="状态"):
        ListRunsByStatusUseCase(SQLAlchemyRunRepository(db_session)).execute("running")
