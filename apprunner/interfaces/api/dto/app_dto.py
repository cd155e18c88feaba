"""App DTO - 保存 App 配置的请求与响应模型"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from apprunner.domain.entities.app import App
from apprunner.domain.entities.input import Input
from apprunner.domain.entities.sql_query_config import (
    SqlFilter,
    SqlFilterOperator,
    SqlOrderBy,
    SqlQueryConfig,
    SqlSortDirection,
)
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.value_objects.key_value import KeyValuePair


class KeyValueDto(BaseModel):
    key: str
    value: str = ""

    def to_domain(self) -> KeyValuePair:
        return KeyValuePair.create(self.key, self.value)


class InputDto(BaseModel):
    title: str
    type: str = "string"
    required: bool = False
    description: str | None = None
    default_value: str | None = None
    options: list[str] = Field(default_factory=list)
    max_length: int | None = None

    def to_domain(self) -> Input:
        return Input.create(
            title=self.title,
            type=self.type,
            required=self.required,
            description=self.description,
            default_value=self.default_value,
            options=self.options,
            max_length=self.max_length,
        )


class SqlFilterDto(BaseModel):
    column: str
    operator: str
    value: str | None = None


class SqlOrderByDto(BaseModel):
    column: str
    direction: Literal["asc", "desc", "ASC", "DESC"] = "ASC"


class SqlQueryConfigDto(BaseModel):
    mode: Literal["gui", "raw"]
    table: str | None = None
    columns: list[str] = Field(default_factory=list)
    filters: list[SqlFilterDto] = Field(default_factory=list)
    limit: int | None = None
    order_by: list[SqlOrderByDto] = Field(default_factory=list)
    raw_sql: str | None = None
    raw_sql_params: list[KeyValueDto] = Field(default_factory=list)

    def to_domain(self) -> SqlQueryConfig:
        if self.mode == "raw":
            return SqlQueryConfig.raw(
                self.raw_sql or "", [param.to_domain() for param in self.raw_sql_params]
            )
        if not self.table:
            raise ValidationError("gui 模式必须指定表名")
        return SqlQueryConfig.gui(
            table=self.table,
            columns=self.columns,
            filters=[
                SqlFilter(
                    column=f.column,
                    operator=SqlFilterOperator.parse(f.operator),
                    value=f.value,
                )
                for f in self.filters
            ],
            limit=self.limit,
            order_by=[
                SqlOrderBy(column=o.column, direction=SqlSortDirection(o.direction.upper()))
                for o in self.order_by
            ],
        )


class SaveAppRequest(BaseModel):
    folder_id: str
    resource_id: str
    name: str
    description: str = ""
    inputs: list[InputDto] = Field(default_factory=list)
    http_method: str | None = None
    url_path: str | None = None
    url_parameters: list[KeyValueDto] = Field(default_factory=list)
    headers: list[KeyValueDto] = Field(default_factory=list)
    body: list[KeyValueDto] = Field(default_factory=list)
    use_dynamic_json_body: bool = False
    use_json_body: bool = True
    sql_config: SqlQueryConfigDto | None = None


class AppResponse(BaseModel):
    id: str
    folder_id: str
    resource_id: str
    name: str
    description: str
    inputs: list[dict[str, Any]]
    http_method: str
    url_path: str | None
    url_parameters: list[dict[str, str]]
    headers: list[dict[str, str]]
    body: list[dict[str, str]]
    use_dynamic_json_body: bool
    use_json_body: bool
    sql_config: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, app: App) -> AppResponse:
        return cls(**app.to_public_dict(), created_at=app.created_at, updated_at=app.updated_at)
