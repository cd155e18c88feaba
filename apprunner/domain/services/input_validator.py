"""Input Type Validator - 按 App 声明的输入 schema 校验用户提交的值

规则：
1. required 且无默认值的输入必须有值（None 与空白字符串视为未提供）
2. 提交的值必须能解析为声明类型
3. schema 中不存在的 title 直接忽略
4. 未提交但有默认值的输入取默认值（默认值按同样规则解析）
5. 可选且无默认值的输入解析为空文本

纯函数，无 I/O。错误只报告 schema 顺序中第一个出错的输入。
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from apprunner.domain.entities.input import Input
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.value_objects.input_type import InputType

TypedValue = str | int | Decimal | bool | date

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TRUE_LITERALS = {"true"}
_FALSE_LITERALS = {"false"}


@dataclass(frozen=True)
class ValidatedInputs:
    """校验后的输入：title → 类型化值（保持 schema 顺序）"""

    values: Mapping[str, TypedValue] = field(default_factory=dict)
    secret_titles: frozenset[str] = field(default_factory=frozenset)

    def text(self, title: str) -> str:
        return to_text(self.values[title])

    def secret_values(self) -> set[str]:
        return {to_text(self.values[t]) for t in self.secret_titles if to_text(self.values[t])}

    def masked(self, marker: str) -> ValidatedInputs:
        """secret 输入的值替换为 marker 的副本（空值保持为空）"""
        values = {
            title: marker if title in self.secret_titles and to_text(value) else value
            for title, value in self.values.items()
        }
        return replace(self, values=values)

    def as_text_pairs(self, *, mask_secrets: str | None = None) -> list[dict[str, str]]:
        """转换为可记录的 [{title, value}] 列表，mask_secrets 为遮盖标记"""
        items = []
        for title, value in self.values.items():
            text = to_text(value)
            if mask_secrets is not None and title in self.secret_titles and text:
                text = mask_secrets
            items.append({"title": title, "value": text})
        return items


def to_text(value: TypedValue) -> str:
    """类型化值的规范文本形式（模板替换使用）"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        normalized = value.normalize()
        # normalize() 会把 100 变成 1E+2，整数值退回定点表示
        if normalized == normalized.to_integral_value():
            return str(normalized.quantize(Decimal(1)))
        return format(normalized, "f")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def parse_value(field_def: Input, raw: Any) -> TypedValue:
    """把原始值解析为输入声明的类型，失败抛 ValidationError"""
    title = field_def.title
    input_type = field_def.type

    if input_type in (InputType.STRING, InputType.SECRET):
        return str(raw)

    if input_type is InputType.TEXT:
        text = str(raw)
        if field_def.max_length is not None and len(text) > field_def.max_length:
            raise ValidationError(f"输入 '{title}' 超过最大长度 {field_def.max_length}")
        return text

    if input_type is InputType.EMAIL:
        text = str(raw).strip()
        if not _EMAIL_PATTERN.match(text):
            raise ValidationError(f"输入 '{title}' 不是合法的邮箱地址: {text}")
        return text

    if input_type is InputType.DATE:
        if isinstance(raw, date):
            return raw
        try:
            return date.fromisoformat(str(raw).strip())
        except ValueError as exc:
            raise ValidationError(f"输入 '{title}' 不是合法的日期 (YYYY-MM-DD): {raw}") from exc

    if input_type is InputType.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        normalized = str(raw).strip().lower()
        if normalized in _TRUE_LITERALS:
            return True
        if normalized in _FALSE_LITERALS:
            return False
        raise ValidationError(f"输入 '{title}' 必须为 true 或 false: {raw}")

    if input_type is InputType.INTEGER:
        if isinstance(raw, bool):
            raise ValidationError(f"输入 '{title}' 必须为整数: {raw}")
        if isinstance(raw, int):
            return raw
        try:
            return int(str(raw).strip())
        except ValueError as exc:
            raise ValidationError(f"输入 '{title}' 必须为整数: {raw}") from exc

    if input_type is InputType.NUMBER:
        if isinstance(raw, bool):
            raise ValidationError(f"输入 '{title}' 必须为数字: {raw}")
        if isinstance(raw, int):
            return raw
        try:
            number = Decimal(str(raw).strip())
        except InvalidOperation as exc:
            raise ValidationError(f"输入 '{title}' 必须为数字: {raw}") from exc
        if not number.is_finite():
            raise ValidationError(f"输入 '{title}' 必须为有限数字: {raw}")
        if number == number.to_integral_value() and "." not in str(raw) and "e" not in str(raw).lower():
            return int(number)
        return number

    if input_type is InputType.SELECT:
        text = str(raw)
        if text not in field_def.options:
            raise ValidationError(
                f"输入 '{title}' 的取值 '{text}' 不在可选项中: {', '.join(field_def.options)}"
            )
        return text

    raise ValidationError(f"输入 '{title}' 声明了不支持的类型: {input_type}")


def validate_inputs(
    inputs: Iterable[Input],
    supplied: Iterable[tuple[str, Any]] | Mapping[str, Any],
) -> ValidatedInputs:
    """校验提交的 (title, value) 列表

    参数：
        inputs: App 声明的输入（有序）
        supplied: 用户提交的 (title, value) 列表或映射；同一 title 多次出现时取最后一次

    返回：
        ValidatedInputs

    抛出：
        ValidationError: 第一个不满足规则的输入
    """
    pairs = supplied.items() if isinstance(supplied, Mapping) else supplied
    provided: dict[str, Any] = {}
    for title, value in pairs:
        if title is None:
            continue
        provided[str(title).strip()] = value

    values: dict[str, TypedValue] = {}
    secrets: set[str] = set()
    for field_def in inputs:
        raw = provided.get(field_def.title)
        if _is_blank(raw):
            if field_def.default_value is not None and not _is_blank(field_def.default_value):
                raw = field_def.default_value
            elif field_def.required:
                raise ValidationError(f"缺少必填输入: {field_def.title}")
            else:
                values[field_def.title] = ""
                if field_def.type.is_secret():
                    secrets.add(field_def.title)
                continue

        values[field_def.title] = parse_value(field_def, raw)
        if field_def.type.is_secret():
            secrets.add(field_def.title)

    return ValidatedInputs(values=values, secret_titles=frozenset(secrets))
