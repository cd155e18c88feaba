"""Variable Substitution Resolver - 占位符替换

语法（封闭集合，非图灵完备）：
    {{input.<title>}}   已校验的输入值
    {{user.<field>}}    当前用户：id / email / name / first_name / last_name

花括号内允许空白，例如 {{ input.userId }}。没有表达式、循环或嵌套。

保存 App 时用 validate_template() 检查所有占位符都能解析；运行时 render() 只做替换，
遇到无法解析的占位符同样抛 ValidationError（防御：理论上不会发生）。
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from apprunner.domain.entities.current_user import CurrentUser
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.services.input_validator import ValidatedInputs
from apprunner.domain.value_objects.key_value import KeyValuePair

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

INPUT_NAMESPACE = "input"
USER_NAMESPACE = "user"
USER_FIELDS = frozenset({"id", "email", "name", "first_name", "last_name"})


@dataclass(frozen=True, slots=True)
class Placeholder:
    raw: str
    namespace: str
    name: str


@dataclass(frozen=True)
class TemplateEnvironment:
    """一次渲染的变量环境（输入值 + 当前用户）"""

    inputs: ValidatedInputs = field(default_factory=ValidatedInputs)
    user: CurrentUser | None = None

    def lookup(self, placeholder: Placeholder) -> str:
        if placeholder.namespace == INPUT_NAMESPACE:
            if placeholder.name not in self.inputs.values:
                raise ValidationError(f"模板引用了未声明的输入: {placeholder.raw}")
            return self.inputs.text(placeholder.name)
        if placeholder.namespace == USER_NAMESPACE:
            if placeholder.name not in USER_FIELDS:
                raise ValidationError(f"未知的用户字段: {placeholder.raw}")
            if self.user is None:
                raise ValidationError(f"模板引用了当前用户，但没有用户上下文: {placeholder.raw}")
            return str(getattr(self.user, placeholder.name))
        raise ValidationError(f"无法解析的占位符: {placeholder.raw}")


def _parse(expression: str, raw: str) -> Placeholder:
    namespace, sep, name = expression.partition(".")
    if not sep or not name.strip():
        raise ValidationError(f"占位符格式错误，应为 {{{{input.<title>}}}} 或 {{{{user.<field>}}}}: {raw}")
    return Placeholder(raw=raw, namespace=namespace.strip(), name=name.strip())


def find_placeholders(template: str | None) -> list[Placeholder]:
    if not template:
        return []
    return [_parse(match.group(1), match.group(0)) for match in PLACEHOLDER_PATTERN.finditer(template)]


def has_placeholders(template: str | None) -> bool:
    return bool(template) and PLACEHOLDER_PATTERN.search(template) is not None


def validate_template(template: str | None, input_titles: Iterable[str]) -> None:
    """保存时校验：所有占位符都必须能针对 App 自己的输入 schema 解析"""
    titles = set(input_titles)
    for placeholder in find_placeholders(template):
        if placeholder.namespace == INPUT_NAMESPACE:
            if placeholder.name not in titles:
                raise ValidationError(f"模板引用了未声明的输入: {placeholder.raw}")
        elif placeholder.namespace == USER_NAMESPACE:
            if placeholder.name not in USER_FIELDS:
                raise ValidationError(
                    f"未知的用户字段: {placeholder.raw}（可用：{', '.join(sorted(USER_FIELDS))}）"
                )
        else:
            raise ValidationError(f"未知的占位符命名空间: {placeholder.raw}")


def validate_pairs(pairs: Iterable[KeyValuePair], input_titles: Iterable[str]) -> None:
    titles = list(input_titles)
    for pair in pairs:
        validate_template(pair.key, titles)
        validate_template(pair.value, titles)


def render(template: str | None, env: TemplateEnvironment) -> str:
    if not template:
        return ""
    return PLACEHOLDER_PATTERN.sub(
        lambda match: env.lookup(_parse(match.group(1), match.group(0))), template
    )


def render_pairs(pairs: Iterable[KeyValuePair], env: TemplateEnvironment) -> tuple[KeyValuePair, ...]:
    return tuple(KeyValuePair(key=render(p.key, env), value=render(p.value, env)) for p in pairs)
