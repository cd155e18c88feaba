"""SqlQueryConfig - App 对 SQL Resource 的查询配置

两种模式：
- gui：由表名、列、过滤条件、排序、limit 组合出 SELECT 语句，值全部以命名参数绑定
- raw：用户手写的只读 SQL（SELECT / WITH），模板只能出现在 raw_sql_params 中

标识符（表名、列名）只允许 [A-Za-z_][A-Za-z0-9_]*，可带一级 schema 前缀。
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from apprunner.domain.exceptions import ValidationError
from apprunner.domain.services import template_resolver
from apprunner.domain.value_objects.key_value import KeyValuePair, pairs_from_dicts, pairs_to_dicts

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
PARAM_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
READ_ONLY_PREFIX = re.compile(r"^\s*(select|with)\b", re.IGNORECASE)


class SqlQueryMode(str, Enum):
    GUI = "gui"
    RAW = "raw"


class SqlFilterOperator(str, Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    LIKE = "LIKE"
    ILIKE = "ILIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"

    @classmethod
    def parse(cls, value: str) -> SqlFilterOperator:
        normalized = " ".join((value or "").split()).upper()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(f"不支持的过滤操作符: {value}")

    def takes_value(self) -> bool:
        return self not in {SqlFilterOperator.IS_NULL, SqlFilterOperator.IS_NOT_NULL}

    def takes_list(self) -> bool:
        return self in {SqlFilterOperator.IN, SqlFilterOperator.NOT_IN}


class SqlSortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True, slots=True)
class SqlFilter:
    column: str
    operator: SqlFilterOperator
    value: str | None = None


@dataclass(frozen=True, slots=True)
class SqlOrderBy:
    column: str
    direction: SqlSortDirection = SqlSortDirection.ASC


def _check_identifier(name: str, what: str) -> str:
    if not name or not IDENTIFIER_PATTERN.match(name.strip()):
        raise ValidationError(f"非法的{what}: {name!r}")
    return name.strip()


def is_read_only_statement(sql: str) -> bool:
    return bool(READ_ONLY_PREFIX.match(sql or ""))


@dataclass(frozen=True)
class SqlQueryConfig:
    mode: SqlQueryMode
    table: str | None = None
    columns: tuple[str, ...] = ()
    filters: tuple[SqlFilter, ...] = ()
    limit: int | None = None
    order_by: tuple[SqlOrderBy, ...] = ()
    raw_sql: str | None = None
    raw_sql_params: tuple[KeyValuePair, ...] = field(default_factory=tuple)

    @classmethod
    def gui(
        cls,
        *,
        table: str,
        columns: Iterable[str] = (),
        filters: Iterable[SqlFilter] = (),
        limit: int | None = None,
        order_by: Iterable[SqlOrderBy] = (),
    ) -> SqlQueryConfig:
        return cls(
            mode=SqlQueryMode.GUI,
            table=table,
            columns=tuple(columns),
            filters=tuple(filters),
            limit=limit,
            order_by=tuple(order_by),
        )

    @classmethod
    def raw(cls, sql: str, params: Iterable[KeyValuePair] = ()) -> SqlQueryConfig:
        return cls(mode=SqlQueryMode.RAW, raw_sql=sql, raw_sql_params=tuple(params))

    def validate(self, input_titles: Iterable[str]) -> None:
        """保存时校验，失败抛 ValidationError"""
        titles = list(input_titles)
        if self.mode is SqlQueryMode.RAW:
            if not self.raw_sql or not self.raw_sql.strip():
                raise ValidationError("raw 模式必须提供 SQL 语句")
            if template_resolver.has_placeholders(self.raw_sql):
                raise ValidationError("SQL 语句中不允许出现模板占位符，请使用命名参数 (:name) 绑定")
            if not is_read_only_statement(self.raw_sql):
                raise ValidationError("只允许执行 SELECT / WITH 只读查询")
            seen: set[str] = set()
            for param in self.raw_sql_params:
                if not PARAM_NAME_PATTERN.match(param.key):
                    raise ValidationError(f"非法的 SQL 参数名: {param.key!r}")
                if param.key in seen:
                    raise ValidationError(f"SQL 参数重复: {param.key}")
                seen.add(param.key)
                template_resolver.validate_template(param.value, titles)
            return

        _check_identifier(self.table or "", "表名")
        for column in self.columns:
            _check_identifier(column, "列名")
        for sql_filter in self.filters:
            _check_identifier(sql_filter.column, "列名")
            if sql_filter.operator.takes_value():
                if sql_filter.value is None or sql_filter.value == "":
                    raise ValidationError(
                        f"过滤条件 {sql_filter.column} {sql_filter.operator.value} 缺少取值"
                    )
                template_resolver.validate_template(sql_filter.value, titles)
        for order in self.order_by:
            _check_identifier(order.column, "排序列名")
        if self.limit is not None and self.limit <= 0:
            raise ValidationError(f"limit 必须为正数: {self.limit}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "table": self.table,
            "columns": list(self.columns),
            "filters": [
                {"column": f.column, "operator": f.operator.value, "value": f.value}
                for f in self.filters
            ],
            "limit": self.limit,
            "order_by": [{"column": o.column, "direction": o.direction.value} for o in self.order_by],
            "raw_sql": self.raw_sql,
            "raw_sql_params": pairs_to_dicts(self.raw_sql_params),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SqlQueryConfig:
        try:
            mode = SqlQueryMode((data.get("mode") or "").lower())
            directions = [
                SqlSortDirection((o.get("direction") or "ASC").upper()) for o in data.get("order_by") or []
            ]
        except ValueError as exc:
            raise ValidationError(f"SQL 配置格式错误: {exc}") from exc
        return cls(
            mode=mode,
            table=data.get("table"),
            columns=tuple(data.get("columns") or ()),
            filters=tuple(
                SqlFilter(
                    column=f["column"],
                    operator=SqlFilterOperator.parse(f["operator"]),
                    value=f.get("value"),
                )
                for f in data.get("filters") or []
            ),
            limit=data.get("limit"),
            order_by=tuple(
                SqlOrderBy(column=o["column"], direction=direction)
                for o, direction in zip(data.get("order_by") or [], directions, strict=True)
            ),
            raw_sql=data.get("raw_sql"),
            raw_sql_params=pairs_from_dicts(data.get("raw_sql_params")),
        )
