"""Resource Request Builder - 合并 Resource 固定配置与 App 覆盖配置，生成 ExecutableRequest

HTTP：
    method  = App 声明的方法（默认 GET）
    url     = Resource base_url + App 解析后的路径
    params / headers / body = Resource 固定项 + App 解析后的项（no-override，解析后再校验一次）
    use_dynamic_json_body 时，请求体是运行时提供的 JSON 文档，语法校验后原样附加

SQL：
    target    = Resource 的连接配置
    statement = raw 模式下的只读 SQL，或 gui 模式拼出的 SELECT
    parameters = 模板解析后的值，一律以命名参数绑定，不拼接进语句

纯函数，无副作用：同一 App + Resource + 输入快照两次构建得到相等的结果。
"""

from __future__ import annotations

import json

from apprunner.domain.entities.app import App
from apprunner.domain.entities.executable_request import (
    ExecutableRequest,
    HttpExecutableRequest,
    SqlConnectionTarget,
    SqlExecutableRequest,
)
from apprunner.domain.entities.resource import HttpResourceConfig, Resource, SqlResourceConfig
from apprunner.domain.entities.sql_query_config import (
    SqlQueryConfig,
    SqlQueryMode,
    is_read_only_statement,
)
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.services.template_resolver import (
    TemplateEnvironment,
    has_placeholders,
    render,
    render_pairs,
)
from apprunner.domain.value_objects.key_value import KeyValuePair, find_conflicts


def build_executable_request(
    resource: Resource,
    app: App,
    env: TemplateEnvironment,
    dynamic_body: str | None = None,
) -> ExecutableRequest:
    """构建可执行请求

    抛出：
        ValidationError: no-override 冲突、动态 JSON 请求体缺失或格式错误、
            App 与 Resource 类型不匹配
    """
    if app.resource_id != resource.id:
        raise ValidationError(f"App {app.id} 未引用 Resource {resource.id}")

    match resource.config:
        case HttpResourceConfig() as config:
            if app.sql_config is not None:
                raise ValidationError("HTTP Resource 的 App 不能配置 SQL 查询")
            return _build_http(config, app, env, dynamic_body)
        case SqlResourceConfig() as config:
            if app.sql_config is None:
                raise ValidationError("SQL Resource 的 App 必须配置 SQL 查询")
            if dynamic_body is not None:
                raise ValidationError("SQL Resource 的 App 不接受动态 JSON 请求体")
            return _build_sql(config, app.sql_config, env)
        case _:
            raise ValidationError(f"不支持的 Resource 类型: {type(resource.config).__name__}")


def _reject_constant(name: str) -> None:
    raise ValidationError(f"动态 JSON 请求体格式错误: 不允许 {name}（不是合法的 JSON 数值）")


def join_url(base_url: str, path: str | None) -> str:
    if not path:
        return base_url
    trimmed = path.lstrip("/")
    if not trimmed:
        return base_url
    return f"{base_url.rstrip('/')}/{trimmed}"


def _merge(
    section: str,
    fixed: tuple[KeyValuePair, ...],
    extra: tuple[KeyValuePair, ...],
    *,
    case_insensitive: bool = False,
) -> tuple[KeyValuePair, ...]:
    conflicts = find_conflicts(fixed, extra, case_insensitive=case_insensitive)
    if conflicts:
        raise ValidationError(
            f"no-override violation: {section} 中的键已由 Resource 固定: {', '.join(conflicts)}"
        )
    return fixed + extra


def _build_http(
    config: HttpResourceConfig,
    app: App,
    env: TemplateEnvironment,
    dynamic_body: str | None,
) -> HttpExecutableRequest:
    url = join_url(config.base_url, render(app.url_path, env))
    url_parameters = _merge("url_parameters", config.url_parameters, render_pairs(app.url_parameters, env))
    headers = _merge("headers", config.headers, render_pairs(app.headers, env), case_insensitive=True)

    raw_body: str | None = None
    if app.use_dynamic_json_body:
        if config.body:
            raise ValidationError(
                "no-override violation: 动态 JSON 请求体不能与 Resource 固定的 body 键同时使用"
            )
        if dynamic_body is None or not dynamic_body.strip():
            raise ValidationError("该 App 需要动态 JSON 请求体，但未提供")
        try:
            json.loads(dynamic_body, parse_constant=_reject_constant)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                f"动态 JSON 请求体格式错误: {exc.msg} (第 {exc.lineno} 行第 {exc.colno} 列)"
            ) from exc
        raw_body = dynamic_body
        body: tuple[KeyValuePair, ...] = ()
    else:
        if dynamic_body is not None:
            raise ValidationError("该 App 未启用动态 JSON 请求体，不能提供 dynamic_body")
        body = _merge("body", config.body, render_pairs(app.body, env))

    return HttpExecutableRequest(
        method=app.http_method,
        url=url,
        url_parameters=url_parameters,
        headers=headers,
        body=body,
        raw_body=raw_body,
        use_json_body=app.use_json_body,
    )


def _build_sql(
    config: SqlResourceConfig,
    sql_config: SqlQueryConfig,
    env: TemplateEnvironment,
) -> SqlExecutableRequest:
    target = SqlConnectionTarget(
        host=config.host,
        port=config.port,
        database_name=config.database_name,
        username=config.username,
        password=config.password,
        auth_scheme=config.auth_scheme,
        engine=config.engine,
        use_ssl=config.use_ssl,
        enable_ssh_tunnel=config.enable_ssh_tunnel,
        connection_options=config.connection_options,
    )

    if sql_config.mode is SqlQueryMode.RAW:
        statement = (sql_config.raw_sql or "").strip()
        if not statement:
            raise ValidationError("raw 模式必须提供 SQL 语句")
        if has_placeholders(statement):
            raise ValidationError("SQL 语句中不允许出现模板占位符，请使用命名参数 (:name) 绑定")
        if not is_read_only_statement(statement):
            raise ValidationError("只允许执行 SELECT / WITH 只读查询")
        parameters = tuple((p.key, render(p.value, env)) for p in sql_config.raw_sql_params)
        return SqlExecutableRequest(target=target, statement=statement, parameters=parameters)

    statement, parameters = build_gui_statement(sql_config, env)
    return SqlExecutableRequest(target=target, statement=statement, parameters=parameters)


def build_gui_statement(
    sql_config: SqlQueryConfig,
    env: TemplateEnvironment,
) -> tuple[str, tuple[tuple[str, str], ...]]:
    """gui 模式：SELECT <columns> FROM <table> [WHERE ...] [ORDER BY ...] [LIMIT n]

    标识符在保存时已按白名单校验；取值全部绑定为 :p0, :p1 ...
    """
    if not sql_config.table:
        raise ValidationError("gui 模式必须指定表名")

    columns = ", ".join(sql_config.columns) if sql_config.columns else "*"
    parts = [f"SELECT {columns} FROM {sql_config.table}"]
    parameters: list[tuple[str, str]] = []

    def bind(value: str) -> str:
        name = f"p{len(parameters)}"
        parameters.append((name, value))
        return f":{name}"

    conditions = []
    for sql_filter in sql_config.filters:
        operator = sql_filter.operator
        if not operator.takes_value():
            conditions.append(f"{sql_filter.column} {operator.value}")
            continue
        value = render(sql_filter.value, env)
        if operator.takes_list():
            items = [item.strip() for item in value.split(",") if item.strip()]
            if not items:
                raise ValidationError(f"过滤条件 {sql_filter.column} {operator.value} 的取值列表为空")
            placeholders = ", ".join(bind(item) for item in items)
            conditions.append(f"{sql_filter.column} {operator.value} ({placeholders})")
        else:
            conditions.append(f"{sql_filter.column} {operator.value} {bind(value)}")
    if conditions:
        parts.append("WHERE " + " AND ".join(conditions))

    if sql_config.order_by:
        parts.append(
            "ORDER BY " + ", ".join(f"{o.column} {o.direction.value}" for o in sql_config.order_by)
        )
    if sql_config.limit is not None:
        parts.append(f"LIMIT {int(sql_config.limit)}")

    return " ".join(parts), tuple(parameters)
