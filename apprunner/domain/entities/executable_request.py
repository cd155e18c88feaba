"""ExecutableRequest - 完全解析、可直接发送的请求描述

两种形态（带标签的联合）：
- HttpExecutableRequest：method / url / query 参数 / headers / body
- SqlExecutableRequest：连接目标 + 语句 + 绑定参数

to_dict() 的输出是确定性的：同一 App + Resource + 输入快照两次构建得到相同结果。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.key_value import KeyValuePair, pairs_from_dicts, pairs_to_dicts
from apprunner.domain.value_objects.resource_kind import ResourceKind


@dataclass(frozen=True, slots=True)
class HttpExecutableRequest:
    method: HttpMethod
    url: str
    url_parameters: tuple[KeyValuePair, ...] = ()
    headers: tuple[KeyValuePair, ...] = ()
    body: tuple[KeyValuePair, ...] = ()
    raw_body: str | None = None
    use_json_body: bool = True

    kind = ResourceKind.HTTP

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": ResourceKind.HTTP.value,
            "method": self.method.value,
            "url": self.url,
            "url_parameters": pairs_to_dicts(self.url_parameters),
            "headers": pairs_to_dicts(self.headers),
            "body": pairs_to_dicts(self.body),
            "raw_body": self.raw_body,
            "use_json_body": self.use_json_body,
        }


@dataclass(frozen=True, slots=True)
class SqlConnectionTarget:
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

    def with_password(self, password: str | None) -> SqlConnectionTarget:
        return replace(self, password=password)

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "database_name": self.database_name,
            "username": self.username,
            "password": self.password,
            "auth_scheme": self.auth_scheme,
            "engine": self.engine,
            "use_ssl": self.use_ssl,
            "enable_ssh_tunnel": self.enable_ssh_tunnel,
            "connection_options": pairs_to_dicts(self.connection_options),
        }


@dataclass(frozen=True, slots=True)
class SqlExecutableRequest:
    target: SqlConnectionTarget
    statement: str
    parameters: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    kind = ResourceKind.SQL

    def parameters_dict(self) -> dict[str, str]:
        return dict(self.parameters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": ResourceKind.SQL.value,
            "target": self.target.to_dict(),
            "statement": self.statement,
            "parameters": [{"name": name, "value": value} for name, value in self.parameters],
        }


ExecutableRequest = HttpExecutableRequest | SqlExecutableRequest


def request_from_dict(data: dict[str, Any]) -> ExecutableRequest:
    """从持久化的 JSON 还原（Repository 读取 Run 时使用）"""
    kind = ResourceKind(data["kind"])
    if kind is ResourceKind.HTTP:
        return HttpExecutableRequest(
            method=HttpMethod(data["method"]),
            url=data["url"],
            url_parameters=pairs_from_dicts(data.get("url_parameters")),
            headers=pairs_from_dicts(data.get("headers")),
            body=pairs_from_dicts(data.get("body")),
            raw_body=data.get("raw_body"),
            use_json_body=bool(data.get("use_json_body", True)),
        )
    target = data["target"]
    return SqlExecutableRequest(
        target=SqlConnectionTarget(
            host=target["host"],
            port=int(target["port"]),
            database_name=target["database_name"],
            username=target["username"],
            password=target.get("password"),
            auth_scheme=target.get("auth_scheme", "username_password"),
            engine=target.get("engine", "postgres"),
            use_ssl=bool(target.get("use_ssl", False)),
            enable_ssh_tunnel=bool(target.get("enable_ssh_tunnel", False)),
            connection_options=pairs_from_dicts(target.get("connection_options")),
        ),
        statement=data["statement"],
        parameters=tuple((p["name"], p["value"]) for p in data.get("parameters", [])),
    )
