"""Input 值对象 - App 声明的一个表单输入字段

业务定义：
- title 在同一 App 内唯一，模板通过 {{input.<title>}} 引用
- type 决定运行时取值的解析规则（见 input_validator）
- select 类型必须声明 options
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from apprunner.domain.exceptions import ValidationError
from apprunner.domain.value_objects.input_type import InputType


@dataclass(frozen=True, slots=True)
class Input:
    title: str
    type: InputType = InputType.STRING
    required: bool = False
    description: str | None = None
    default_value: str | None = None
    options: tuple[str, ...] = field(default_factory=tuple)
    max_length: int | None = None

    @classmethod
    def create(
        cls,
        *,
        title: str,
        type: str | InputType = InputType.STRING,
        required: bool = False,
        description: str | None = None,
        default_value: str | None = None,
        options: list[str] | tuple[str, ...] | None = None,
        max_length: int | None = None,
    ) -> Input:
        if not title or not title.strip():
            raise ValidationError("输入字段 title 不能为空")
        try:
            input_type = type if isinstance(type, InputType) else InputType.parse(type)
        except ValueError as exc:
            raise ValidationError(f"输入字段 '{title.strip()}': {exc}") from exc
        if max_length is not None and max_length <= 0:
            raise ValidationError(f"输入字段 '{title.strip()}' 的 max_length 必须为正数")
        return cls(
            title=title.strip(),
            type=input_type,
            required=required,
            description=description,
            default_value=default_value,
            options=tuple(options or ()),
            max_length=max_length,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "type": self.type.value,
            "required": self.required,
            "description": self.description,
            "default_value": self.default_value,
            "options": list(self.options),
            "max_length": self.max_length,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Input:
        return cls(
            title=data["title"],
            type=InputType.parse(data.get("type", "string")),
            required=bool(data.get("required", False)),
            description=data.get("description"),
            default_value=data.get("default_value"),
            options=tuple(data.get("options") or ()),
            max_length=data.get("max_length"),
        )
