"""SaveAppUseCase - 创建 / 更新 App 配置

保存时不变式（App.validate_against 负责）：
    - name 非空，输入 title 唯一，select 有可选项，默认值能按类型解析
    - HTTP 方法合法
    - no-override：App 的 params / headers / body 键不得与 Resource 固定键重复
    - 所有占位符都能针对 App 自己的输入 schema 解析
    - SQL 配置与 Resource 类型一致，raw SQL 只读且不含占位符
    - 动态 JSON 请求体不能与 Resource 固定 body 键同时使用

App 行与 AppCreatedEvent / AppUpdatedEvent 在同一事务中写入。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from apprunner.application.services.event_store import TransactionalEventStore
from apprunner.domain.entities.app import App
from apprunner.domain.entities.current_user import CurrentUser
from apprunner.domain.entities.input import Input
from apprunner.domain.entities.sql_query_config import SqlQueryConfig
from apprunner.domain.ports.app_repository import AppRepository
from apprunner.domain.ports.resource_repository import ResourceRepository
from apprunner.domain.value_objects.key_value import KeyValuePair

logger = logging.getLogger(__name__)


@dataclass
class SaveAppInput:
    current_user: CurrentUser
    folder_id: str
    resource_id: str
    name: str
    app_id: str | None = None
    description: str = ""
    inputs: list[Input] = field(default_factory=list)
    http_method: str | None = None
    url_path: str | None = None
    url_parameters: list[KeyValuePair] = field(default_factory=list)
    headers: list[KeyValuePair] = field(default_factory=list)
    body: list[KeyValuePair] = field(default_factory=list)
    use_dynamic_json_body: bool = False
    use_json_body: bool = True
    sql_config: SqlQueryConfig | None = None


class SaveAppUseCase:
    def __init__(
        self,
        *,
        app_repository: AppRepository,
        resource_repository: ResourceRepository,
        event_store: TransactionalEventStore,
    ) -> None:
        self.app_repository = app_repository
        self.resource_repository = resource_repository
        self.event_store = event_store

    def execute(self, input_data: SaveAppInput) -> App:
        """app_id 为空时创建，否则整体更新

        Raises:
            NotFoundError: App 或 Resource 不存在
            ValidationError: 任一保存时不变式不满足
            PersistenceError: 写入失败
        """
        resource = self.resource_repository.get_by_id(input_data.resource_id)
        config = {
            "name": input_data.name,
            "description": input_data.description,
            "inputs": input_data.inputs,
            "http_method": input_data.http_method,
            "url_path": input_data.url_path,
            "url_parameters": input_data.url_parameters,
            "headers": input_data.headers,
            "body": input_data.body,
            "use_dynamic_json_body": input_data.use_dynamic_json_body,
            "use_json_body": input_data.use_json_body,
            "sql_config": input_data.sql_config,
        }

        if input_data.app_id is None:
            app = App.create(
                folder_id=input_data.folder_id,
                resource=resource,
                actor_user_id=input_data.current_user.id,
                **config,
            )
        else:
            existing = self.app_repository.get_by_id(input_data.app_id)
            app = existing.update(
                resource=resource,
                actor_user_id=input_data.current_user.id,
                **config,
            )

        saved = self.event_store.commit_app(app)
        logger.info("App %s saved (resource=%s)", saved.id, resource.id)
        return saved
