"""Resource 实体 - 空间内共享的连接目标（HTTP 端点或 SQL 数据库）

业务定义：
- Resource 由 Resource 管理子系统维护，执行引擎只读
- App 持有 Resource 的引用而不是副本，Resource 修改立即影响所有依赖它的 App
- 连接配置是一个带标签的联合：HttpResourceConfig | SqlResourceConfig
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from apprunner.domain.exceptions import ValidationError
from apprunner.domain.value_objects.key_value import KeyValuePair
from apprunner.domain.value_objects.resource_kind import ResourceKind


@dataclass(frozen=True, slots=True)
class HttpResourceConfig:
    base_url: str
    url_parameters: tuple[KeyValuePair, ...] = ()
    headers: tuple[KeyValuePair, ...] = ()
    body: tuple[KeyValuePair, ...] = ()


@dataclass(frozen=True, slots=True)
class SqlResourceConfig:
    host: str
    port: int
    database_name: str
    username: str
    password: str | None = None
    auth_scheme: str = "username_password"
    engine: str = "postgres"
    use_ssl: bool = False
    enable_ssh_tunnel: bool = False
    connection_options: tuple[KeyValuePair, ...] = ()


ResourceConfig = HttpResourceConfig | SqlResourceConfig


@dataclass(frozen=True)
class Resource:
    id: str
    space_id: str
    name: str
    description: str
    config: ResourceConfig
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def kind(self) -> ResourceKind:
        match self.config:
            case HttpResourceConfig():
                return ResourceKind.HTTP
            case SqlResourceConfig():
                return ResourceKind.SQL

    @classmethod
    def create_http(
        cls,
        *,
        space_id: str,
        name: str,
        base_url: str,
        description: str = "",
        url_parameters: list[KeyValuePair] | None = None,
        headers: list[KeyValuePair] | None = None,
        body: list[KeyValuePair] | None = None,
    ) -> Resource:
        if not base_url or not base_url.strip():
            raise ValidationError("HTTP Resource 的 base_url 不能为空")
        if not base_url.strip().lower().startswith(("http://", "https://")):
            raise ValidationError(f"base_url 必须以 http:// 或 https:// 开头: {base_url}")
        return cls(
            id=str(uuid4()),
            space_id=space_id,
            name=_require_name(name),
            description=description,
            config=HttpResourceConfig(
                base_url=base_url.strip(),
                url_parameters=tuple(url_parameters or ()),
                headers=tuple(headers or ()),
                body=tuple(body or ()),
            ),
        )

    @classmethod
    def create_sql(
        cls,
        *,
        space_id: str,
        name: str,
        host: str,
        port: int,
        database_name: str,
        username: str,
        password: str | None = None,
        description: str = "",
        use_ssl: bool = False,
        enable_ssh_tunnel: bool = False,
        connection_options: list[KeyValuePair] | None = None,
    ) -> Resource:
        if not host or not database_name or not username:
            raise ValidationError("SQL Resource 需要 host、database_name 和 username")
        if not 0 < int(port) < 65536:
            raise ValidationError(f"端口超出范围: {port}")
        return cls(
            id=str(uuid4()),
            space_id=space_id,
            name=_require_name(name),
            description=description,
            config=SqlResourceConfig(
                host=host,
                port=int(port),
                database_name=database_name,
                username=username,
                password=password,
                use_ssl=use_ssl,
                enable_ssh_tunnel=enable_ssh_tunnel,
                connection_options=tuple(connection_options or ()),
            ),
        )


def _require_name(name: str) -> str:
    if not name or not name.strip():
        raise ValidationError("Resource name 不能为空")
    return name.strip()
