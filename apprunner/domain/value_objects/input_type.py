"""InputType 枚举 - App 输入字段的声明类型

封闭集合，新增类型需要同时更新 input_validator 中的解析规则。
"""

from __future__ import annotations

from enum import Enum


class InputType(str, Enum):
    STRING = "string"
    TEXT = "text"
    EMAIL = "email"
    DATE = "date"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    SELECT = "select"
    SECRET = "secret"

    @classmethod
    def parse(cls, value: str) -> InputType:
        """按名称解析（大小写不敏感），未知类型抛 ValueError"""
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"未知的输入类型: {value}")

    def is_secret(self) -> bool:
        return self is InputType.SECRET
