"""CreateRunUseCase - 调用一次 App 并把结果写入审计日志

业务场景:
    终端用户填写 App 的输入表单并提交，系统构建出站请求（HTTP 或 SQL），
    发送并捕获结果，把 Run 终态与事件原子地落库，返回脱敏后的 Run。

执行顺序（严格串行）:
    0. 授权检查（可选，拒绝时直接短路）
    1. 获取 App（不存在 → NotFoundError）
    2. 获取 Resource（不存在 → NotFoundError）
    3. 校验输入
    4. 模板解析 + 构建 ExecutableRequest
    5. 生成脱敏副本：secret 输入以 REDACTED 重新渲染（真实请求只交给 Dispatcher）
    6. Run.create（PENDING + RunCreatedEvent）
    7. Dispatcher 发送（失败是正常结果，不抛异常）
    8. Run 进入 SUCCEEDED / FAILED
    9. EventStore 原子写入
   10. 返回脱敏后的 Run

错误语义:
    - ValidationError / NotFoundError / AuthorizationDeniedError：不创建 Run
    - 执行失败：返回 FAILED 的 Run
    - PersistenceError：唯一向上抛出的系统错误
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from apprunner.application.services.event_store import TransactionalEventStore
from apprunner.application.services.execution_dispatcher import ExecutionDispatcher
from apprunner.domain.entities.current_user import CurrentUser
from apprunner.domain.entities.run import Run
from apprunner.domain.exceptions import AuthorizationDeniedError
from apprunner.domain.ports.app_repository import AppRepository
from apprunner.domain.ports.authorization_service import AuthorizationService
from apprunner.domain.ports.resource_repository import ResourceRepository
from apprunner.domain.services.input_validator import validate_inputs
from apprunner.domain.services.request_builder import build_executable_request
from apprunner.domain.services.secret_redactor import REDACTED, SecretRedactor
from apprunner.domain.services.template_resolver import TemplateEnvironment

logger = logging.getLogger(__name__)

RUN_APP_RELATION = "run_app"


@dataclass
class CreateRunInput:
    """创建 Run 的输入参数

    Attributes:
        app_id: 被调用的 App
        input_values: 用户提交的 (title, value) 列表
        current_user: 发起调用的用户
        dynamic_body: 运行时 JSON 请求体（仅 use_dynamic_json_body 的 App）
    """

    app_id: str
    current_user: CurrentUser
    input_values: Iterable[tuple[str, Any]] | Mapping[str, Any] = field(default_factory=list)
    dynamic_body: str | None = None


class CreateRunUseCase:
    def __init__(
        self,
        *,
        app_repository: AppRepository,
        resource_repository: ResourceRepository,
        dispatcher: ExecutionDispatcher,
        event_store: TransactionalEventStore,
        authorization_service: AuthorizationService | None = None,
    ) -> None:
        self.app_repository = app_repository
        self.resource_repository = resource_repository
        self.dispatcher = dispatcher
        self.event_store = event_store
        self.authorization_service = authorization_service

    async def execute(self, input_data: CreateRunInput) -> Run:
        user = input_data.current_user
        if self.authorization_service is not None:
            subject, obj = f"user:{user.id}", f"app:{input_data.app_id}"
            allowed = await self.authorization_service.check_permission(subject, RUN_APP_RELATION, obj)
            if not allowed:
                raise AuthorizationDeniedError(subject, RUN_APP_RELATION, obj)

        # 审计库是同步 Session，读写放到线程池，不占用事件循环
        app = await asyncio.to_thread(self.app_repository.get_by_id, input_data.app_id)
        resource = await asyncio.to_thread(self.resource_repository.get_by_id, app.resource_id)

        validated = validate_inputs(app.inputs, input_data.input_values)
        env = TemplateEnvironment(inputs=validated, user=user)
        request = build_executable_request(resource, app, env, input_data.dynamic_body)

        # 记录用的副本：secret 输入直接以 REDACTED 渲染，再做凭据键与密码脱敏
        masked_env = TemplateEnvironment(inputs=validated.masked(REDACTED), user=user)
        masked_request = build_executable_request(resource, app, masked_env, input_data.dynamic_body)
        redactor = SecretRedactor.for_request(request, validated.secret_values())
        redacted_request = redactor.redact_request(masked_request)

        run = Run.create(
            app_id=app.id,
            user_id=user.id,
            input_values=validated.as_text_pairs(mask_secrets=REDACTED),
        )
        logger.info("Run %s dispatching: app=%s kind=%s", run.id, app.id, request.kind.value)

        result = await self.dispatcher.dispatch(request)
        run = run.complete(redacted_request, redactor.redact_result(result))

        committed = await asyncio.to_thread(self.event_store.commit_run, run)
        logger.info(
            "Run %s finished: status=%s elapsed_ms=%s",
            committed.id,
            committed.status.value,
            result.elapsed_ms,
        )
        return committed
