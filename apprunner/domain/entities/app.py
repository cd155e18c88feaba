"""App 实体 - 绑定到一个 Resource 的调用模板

业务定义：
- App 属于某个 Folder，引用（而不是复制）一个 Resource
- App 声明有序的输入字段，运行时由终端用户填写
- App 只能追加 Resource 未固定的 headers / query 参数 / body 键（no-override 不变式），
  在创建和每次更新时校验，构建请求时再校验一次
- App 的配置变更产生 AppCreatedEvent / AppUpdatedEvent，与 App 行同一事务落库

设计原则：
- frozen dataclass + 未提交事件元组，所有变更返回新实例
- 纯 Python，不做 I/O
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from apprunner.domain.entities.event import DomainEvent
from apprunner.domain.entities.input import Input
from apprunner.domain.entities.resource import HttpResourceConfig, Resource, SqlResourceConfig
from apprunner.domain.entities.sql_query_config import SqlQueryConfig
from apprunner.domain.events import app_events
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.services import template_resolver
from apprunner.domain.services.input_validator import parse_value
from apprunner.domain.services.secret_redactor import SecretRedactor
from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.input_type import InputType
from apprunner.domain.value_objects.key_value import KeyValuePair, find_conflicts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class App:
    """App 实体

    属性说明：
    - folder_id / resource_id: 所属 Folder 与引用的 Resource
    - inputs: 有序输入声明，title 唯一
    - http_method / url_path / url_parameters / headers / body: HTTP 覆盖配置（值可含模板）
    - use_dynamic_json_body: 请求体由调用方在运行时提供完整 JSON 文档
    - use_json_body: 键值对请求体按 JSON 发送（False 时按表单编码）
    - sql_config: SQL Resource 的查询配置
    - uncommitted_events: 尚未落库的领域事件
    """

    id: str
    folder_id: str
    resource_id: str
    name: str
    description: str = ""
    inputs: tuple[Input, ...] = ()
    http_method: HttpMethod = HttpMethod.GET
    url_path: str | None = None
    url_parameters: tuple[KeyValuePair, ...] = ()
    headers: tuple[KeyValuePair, ...] = ()
    body: tuple[KeyValuePair, ...] = ()
    use_dynamic_json_body: bool = False
    use_json_body: bool = True
    sql_config: SqlQueryConfig | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    uncommitted_events: tuple[DomainEvent, ...] = ()

    @property
    def input_titles(self) -> list[str]:
        return [field_def.title for field_def in self.inputs]

    @classmethod
    def create(
        cls,
        *,
        folder_id: str,
        resource: Resource,
        name: str,
        actor_user_id: str,
        description: str = "",
        inputs: Iterable[Input] = (),
        http_method: str | HttpMethod | None = None,
        url_path: str | None = None,
        url_parameters: Iterable[KeyValuePair] = (),
        headers: Iterable[KeyValuePair] = (),
        body: Iterable[KeyValuePair] = (),
        use_dynamic_json_body: bool = False,
        use_json_body: bool = True,
        sql_config: SqlQueryConfig | None = None,
    ) -> App:
        """创建 App（校验全部保存时不变式）

        抛出：
            ValidationError: 任一不变式不满足
        """
        if not folder_id or not folder_id.strip():
            raise ValidationError("folder_id 不能为空")
        now = datetime.now(UTC)
        app = cls(
            id=str(uuid4()),
            folder_id=folder_id.strip(),
            resource_id=resource.id,
            name=name.strip() if name else "",
            description=description or "",
            inputs=tuple(inputs),
            http_method=_parse_method(http_method),
            url_path=url_path or None,
            url_parameters=tuple(url_parameters),
            headers=tuple(headers),
            body=tuple(body),
            use_dynamic_json_body=use_dynamic_json_body,
            use_json_body=use_json_body,
            sql_config=sql_config,
            created_at=now,
            updated_at=now,
        )
        app.validate_against(resource)
        return replace(app, uncommitted_events=(app_events.app_created(app, actor_user_id),))

    def update(
        self,
        *,
        resource: Resource,
        actor_user_id: str,
        name: str,
        description: str = "",
        inputs: Iterable[Input] = (),
        http_method: str | HttpMethod | None = None,
        url_path: str | None = None,
        url_parameters: Iterable[KeyValuePair] = (),
        headers: Iterable[KeyValuePair] = (),
        body: Iterable[KeyValuePair] = (),
        use_dynamic_json_body: bool = False,
        use_json_body: bool = True,
        sql_config: SqlQueryConfig | None = None,
    ) -> App:
        """整体替换 App 配置，返回新实例（可以同时切换 Resource）"""
        updated = replace(
            self,
            resource_id=resource.id,
            name=name.strip() if name else "",
            description=description or "",
            inputs=tuple(inputs),
            http_method=_parse_method(http_method),
            url_path=url_path or None,
            url_parameters=tuple(url_parameters),
            headers=tuple(headers),
            body=tuple(body),
            use_dynamic_json_body=use_dynamic_json_body,
            use_json_body=use_json_body,
            sql_config=sql_config,
            updated_at=datetime.now(UTC),
        )
        updated.validate_against(resource)
        event = app_events.app_updated(self, updated, actor_user_id)
        return replace(updated, uncommitted_events=self.uncommitted_events + (event,))

    def mark_events_committed(self) -> App:
        return replace(self, uncommitted_events=())

    def validate_against(self, resource: Resource) -> None:
        """保存时不变式校验（针对当前 Resource 配置）"""
        if not self.name:
            raise ValidationError("App name 不能为空")
        if self.resource_id != resource.id:
            raise ValidationError(f"App 引用的 Resource 不匹配: {self.resource_id} != {resource.id}")
        self._validate_inputs()

        titles = self.input_titles
        match resource.config:
            case HttpResourceConfig() as config:
                if self.sql_config is not None:
                    raise ValidationError("HTTP Resource 的 App 不能配置 SQL 查询")
                self._validate_http(config, titles)
            case SqlResourceConfig():
                if self.sql_config is None:
                    raise ValidationError("SQL Resource 的 App 必须配置 SQL 查询")
                if self.use_dynamic_json_body:
                    raise ValidationError("SQL Resource 的 App 不支持动态 JSON 请求体")
                self.sql_config.validate(titles)

    def _validate_inputs(self) -> None:
        seen: set[str] = set()
        for field_def in self.inputs:
            if not field_def.title or not field_def.title.strip():
                raise ValidationError("输入字段 title 不能为空")
            if field_def.title in seen:
                raise ValidationError(f"输入字段 title 重复: {field_def.title}")
            seen.add(field_def.title)
            if field_def.type is InputType.SELECT and not field_def.options:
                raise ValidationError(f"select 输入 '{field_def.title}' 必须声明可选项")
            if field_def.default_value is not None and field_def.default_value != "":
                parse_value(field_def, field_def.default_value)

    def _validate_http(self, config: HttpResourceConfig, titles: list[str]) -> None:
        check_no_override(config, self.url_parameters, self.headers, self.body)
        if self.use_dynamic_json_body:
            if config.body:
                raise ValidationError(
                    "no-override violation: 动态 JSON 请求体不能与 Resource 固定的 body 键同时使用"
                )
            if self.body:
                raise ValidationError("启用动态 JSON 请求体时不能再配置键值对 body")

        template_resolver.validate_template(self.url_path, titles)
        template_resolver.validate_pairs(self.url_parameters, titles)
        template_resolver.validate_pairs(self.headers, titles)
        template_resolver.validate_pairs(self.body, titles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "folder_id": self.folder_id,
            "resource_id": self.resource_id,
            "name": self.name,
            "description": self.description,
            "inputs": [field_def.to_dict() for field_def in self.inputs],
            "http_method": self.http_method.value,
            "url_path": self.url_path,
            "url_parameters": [p.to_dict() for p in self.url_parameters],
            "headers": [p.to_dict() for p in self.headers],
            "body": [p.to_dict() for p in self.body],
            "use_dynamic_json_body": self.use_dynamic_json_body,
            "use_json_body": self.use_json_body,
            "sql_config": self.sql_config.to_dict() if self.sql_config else None,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """to_dict() 的对外副本：凭据类 header / 参数 / body 的值已遮盖"""
        redactor = SecretRedactor()
        data = self.to_dict()
        data["url_parameters"] = [p.to_dict() for p in redactor.redact_pairs(self.url_parameters)]
        data["headers"] = [p.to_dict() for p in redactor.redact_pairs(self.headers)]
        data["body"] = [p.to_dict() for p in redactor.redact_pairs(self.body)]
        return data


def check_no_override(
    config: HttpResourceConfig,
    url_parameters: Iterable[KeyValuePair],
    headers: Iterable[KeyValuePair],
    body: Iterable[KeyValuePair],
) -> None:
    """App 追加的键不得与 Resource 固定的键重复，违反时抛 ValidationError"""
    conflicts = {
        "url_parameters": find_conflicts(config.url_parameters, url_parameters),
        "headers": find_conflicts(config.headers, headers, case_insensitive=True),
        "body": find_conflicts(config.body, body),
    }
    for section, keys in conflicts.items():
        if keys:
            logger.info("no-override violation in %s: %s", section, keys)
            raise ValidationError(
                f"no-override violation: {section} 中的键已由 Resource 固定: {', '.join(keys)}"
            )


def _parse_method(value: str | HttpMethod | None) -> HttpMethod:
    if isinstance(value, HttpMethod):
        return value
    try:
        return HttpMethod.parse(value)
    except ValueError as exc:
        raise ValidationError(f"不支持的 HTTP 方法: {value}") from exc
