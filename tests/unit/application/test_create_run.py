"""CreateRunUseCase 单元测试

测试策略:
- Repository / EventStore 使用内存 SQLite（真实 SQLAlchemy 实现）
- Dispatcher 使用 Fake HTTP 客户端，记录收到的未脱敏请求
"""

from __future__ import annotations

import asyncio
import time

import pytest

from apprunner.application.services.event_store import TransactionalEventStore
from apprunner.application.services.execution_dispatcher import ExecutionDispatcher
from apprunner.application.use_cases.create_run import CreateRunInput, CreateRunUseCase
from apprunner.domain.entities.app import App
from apprunner.domain.entities.event import EntityType
from apprunner.domain.entities.input import Input
from apprunner.domain.exceptions import (
    AuthorizationDeniedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from apprunner.domain.ports.http_client_port import HttpResponse
from apprunner.domain.services.secret_redactor import REDACTED
from apprunner.domain.value_objects.key_value import KeyValuePair
from apprunner.domain.value_objects.run_status import RunStatus
from apprunner.infrastructure.database.repositories import (
    SQLAlchemyAppRepository,
    SQLAlchemyEventRepository,
    SQLAlchemyResourceRepository,
    SQLAlchemyRunRepository,
)
from apprunner.infrastructure.database.transaction_manager import SQLAlchemyTransactionManager


class _RecordingHttpClient:
    def __init__(self, response: HttpResponse | None = None, delay: float = 0) -> None:
        self.response = response or HttpResponse(status_code=200, body='{"ok": true}')
        self.delay = delay
        self.requests = []

    async def send(self, request, timeout):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.response


class _StaticAuthorization:
    def __init__(self, allowed: bool) -> None:
        self.allowed = allowed
        self.checks = []

    async def check_permission(self, subject, relation, obj):
        self.checks.append((subject, relation, obj))
        return self.allowed


class _SlowAppRepository:
    """同步阻塞的 Repository（模拟慢查询或连接池等待）"""

    def __init__(self, inner, delay: float) -> None:
        self.inner = inner
        self.delay = delay

    def get_by_id(self, app_id):
        time.sleep(self.delay)
        return self.inner.get_by_id(app_id)


class _BrokenTransactionManager:
    def commit(self):
        raise RuntimeError("database is locked")

    def rollback(self):
        pass


@pytest.fixture
def saved_app(db_session, http_resource) -> App:
    SQLAlchemyResourceRepository(db_session).save(http_resource)
    app = App.create(
        folder_id="folder-1",
        resource=http_resource,
        name="Get user",
        actor_user_id="builder",
        inputs=[
            Input.create(title="userId", type="integer", required=True),
            Input.create(title="apiKey", type="secret", required=True),
        ],
        url_path="/users/{{input.userId}}",
        headers=[KeyValuePair("X-Upstream-Key", "{{input.apiKey}}")],
    )
    SQLAlchemyAppRepository(db_session).save(app)
    db_session.commit()
    return app


def _use_case(db_session, client, *, authorization=None, transaction_manager=None, timeout=30.0):
    return CreateRunUseCase(
        app_repository=SQLAlchemyAppRepository(db_session),
        resource_repository=SQLAlchemyResourceRepository(db_session),
        dispatcher=ExecutionDispatcher(http_client=client, http_timeout=timeout),
        event_store=TransactionalEventStore(
            run_repository=SQLAlchemyRunRepository(db_session),
            app_repository=SQLAlchemyAppRepository(db_session),
            event_repository=SQLAlchemyEventRepository(db_session),
            transaction_manager=transaction_manager or SQLAlchemyTransactionManager(db_session),
        ),
        authorization_service=authorization,
    )


def _input(app_id: str, current_user, **values) -> CreateRunInput:
    return CreateRunInput(app_id=app_id, current_user=current_user, input_values=list(values.items()))


class TestSuccessfulRun:
    @pytest.mark.asyncio
    async def test_real_secret_is_sent_but_only_redacted_copy_is_stored(
        self, db_session, saved_app, current_user
    ):
        client = _RecordingHttpClient()
        use_case = _use_case(db_session, client)

        run = await use_case.execute(
            _input(saved_app.id, current_user, userId="42", apiKey="sk-live-999")
        )

        sent = client.requests[0]
        assert sent.url == "https://api.example.com/users/42"
        assert ("Authorization", "Bearer s3cr3t-token") in [(h.key, h.value) for h in sent.headers]
        assert ("X-Upstream-Key", "sk-live-999") in [(h.key, h.value) for h in sent.headers]

        assert run.status is RunStatus.SUCCEEDED
        stored = SQLAlchemyRunRepository(db_session).get_by_id(run.id)
        headers = {h.key: h.value for h in stored.executable_request.headers}
        assert headers["Authorization"] == f"Bearer {REDACTED}"
        assert headers["X-Upstream-Key"] == REDACTED
        assert {"title": "apiKey", "value": REDACTED} in stored.input_values
        assert {"title": "userId", "value": "42"} in stored.input_values

    @pytest.mark.asyncio
    async def test_short_secret_inside_path_and_header_is_not_stored(
        self, db_session, http_resource, current_user
    ):
        """Given: 3 个字符的 secret 输入出现在 URL 路径和普通 header 值的中间
        When: 调用 App
        Then: 出站请求带真实值；落库的请求、事件与返回的 Run 都看不到它"""
        SQLAlchemyResourceRepository(db_session).save(http_resource)
        app = App.create(
            folder_id="folder-1",
            resource=http_resource,
            name="Verify PIN",
            actor_user_id="builder",
            inputs=[Input.create(title="pin", type="secret", required=True)],
            url_path="/verify/{{input.pin}}",
            headers=[KeyValuePair("X-Note", "pin={{input.pin}}")],
        )
        SQLAlchemyAppRepository(db_session).save(app)
        db_session.commit()
        client = _RecordingHttpClient()

        run = await _use_case(db_session, client).execute(_input(app.id, current_user, pin="q7z"))

        sent = client.requests[0]
        assert sent.url == "https://api.example.com/verify/q7z"
        assert ("X-Note", "pin=q7z") in [(h.key, h.value) for h in sent.headers]

        stored = SQLAlchemyRunRepository(db_session).get_by_id(run.id)
        assert stored.executable_request.url == f"https://api.example.com/verify/{REDACTED}"
        headers = {h.key: h.value for h in stored.executable_request.headers}
        assert headers["X-Note"] == f"pin={REDACTED}"
        assert "q7z" not in str(stored.executable_request.to_dict())
        assert "q7z" not in str(run.executable_request.to_dict())
        events = SQLAlchemyEventRepository(db_session).list_by_entity(EntityType.RUN, run.id)
        assert "q7z" not in str([e.payload for e in events])

    @pytest.mark.asyncio
    async def test_events_are_persisted_with_run(self, db_session, saved_app, current_user):
        run = await _use_case(db_session, _RecordingHttpClient()).execute(
            _input(saved_app.id, current_user, userId="1", apiKey="k-1234")
        )

        events = SQLAlchemyEventRepository(db_session).list_by_entity(EntityType.RUN, run.id)
        assert [e.event_type for e in events] == ["RunCreatedEvent", "RunSucceededEvent"]
        assert all(e.actor_user_id == current_user.id for e in events)
        assert "k-1234" not in str([e.payload for e in events])


class TestFailedRun:
    @pytest.mark.asyncio
    async def test_timeout_produces_failed_run_not_exception(self, db_session, saved_app, current_user):
        """Given: 出站调用超时
        When: 调用 App
        Then: 返回 FAILED 的 Run，Run 与 RunFailedEvent 已落库"""
        client = _RecordingHttpClient(delay=1.0)

        run = await _use_case(db_session, client, timeout=0.05).execute(
            _input(saved_app.id, current_user, userId="1", apiKey="k-1234")
        )

        assert run.status is RunStatus.FAILED
        assert run.result.failure_kind.value == "timeout"
        events = SQLAlchemyEventRepository(db_session).list_by_entity(EntityType.RUN, run.id)
        assert events[-1].event_type == "RunFailedEvent"

    @pytest.mark.asyncio
    async def test_error_response_body_is_redacted(self, db_session, saved_app, current_user):
        client = _RecordingHttpClient(
            HttpResponse(status_code=401, body="key sk-live-999 rejected")
        )

        run = await _use_case(db_session, client).execute(
            _input(saved_app.id, current_user, userId="1", apiKey="sk-live-999")
        )

        assert run.status is RunStatus.FAILED
        assert run.result.status_code == 401
        assert run.result.response_body == f"key {REDACTED} rejected"


class TestRejectedBeforeDispatch:
    @pytest.mark.asyncio
    async def test_invalid_input_creates_no_run(self, db_session, saved_app, current_user):
        client = _RecordingHttpClient()

        with pytest.raises(ValidationError, match="userId"):
            await _use_case(db_session, client).execute(
                _input(saved_app.id, current_user, userId="abc", apiKey="k-1234")
            )

        assert client.requests == []
        assert SQLAlchemyRunRepository(db_session).count_by_app(saved_app.id) == 0

    @pytest.mark.asyncio
    async def test_unknown_app(self, db_session, current_user):
        with pytest.raises(NotFoundError):
            await _use_case(db_session, _RecordingHttpClient()).execute(_input("missing", current_user))

    @pytest.mark.asyncio
    async def test_authorization_denied_short_circuits(self, db_session, saved_app, current_user):
        authorization = _StaticAuthorization(allowed=False)
        client = _RecordingHttpClient()

        with pytest.raises(AuthorizationDeniedError):
            await _use_case(db_session, client, authorization=authorization).execute(
                _input(saved_app.id, current_user, userId="1", apiKey="k-1234")
            )

        assert authorization.checks == [("user:user-1", "run_app", f"app:{saved_app.id}")]
        assert client.requests == []


@pytest.mark.asyncio
async def test_blocking_repository_does_not_stall_event_loop(db_session, saved_app, current_user):
    """Given: App 查询同步阻塞 0.3s
    When: 执行 Run 的同时跑一个每 10ms 计数一次的协程
    Then: 计数协程在此期间持续推进"""
    use_case = _use_case(db_session, _RecordingHttpClient())
    use_case.app_repository = _SlowAppRepository(SQLAlchemyAppRepository(db_session), delay=0.3)
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    task = asyncio.create_task(ticker())
    try:
        run = await use_case.execute(_input(saved_app.id, current_user, userId="1", apiKey="k-1234"))
    finally:
        task.cancel()

    assert run.status is RunStatus.SUCCEEDED
    assert ticks >= 10


@pytest.mark.asyncio
async def test_persistence_failure_is_raised(db_session, saved_app, current_user):
    use_case = _use_case(
        db_session, _RecordingHttpClient(), transaction_manager=_BrokenTransactionManager()
    )

    with pytest.raises(PersistenceError):
        await use_case.execute(_input(saved_app.id, current_user, userId="1", apiKey="k-1234"))
