"""KeyValuePair 值对象 - headers / query 参数 / body 中的一项

App 中的 value 可以是模板（含占位符），Resource 中的 value 为固定值。
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from apprunner.domain.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class KeyValuePair:
    key: str
    value: str

    @classmethod
    def create(cls, key: str, value: str | None) -> KeyValuePair:
        if key is None or not key.strip():
            raise ValidationError("键不能为空")
        return cls(key=key.strip(), value="" if value is None else str(value))

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyValuePair:
        return cls(key=str(data["key"]), value=str(data.get("value", "")))


def pairs_from_dicts(items: Iterable[dict[str, Any]] | None) -> tuple[KeyValuePair, ...]:
    return tuple(KeyValuePair.from_dict(item) for item in items or ())


def pairs_to_dicts(pairs: Iterable[KeyValuePair]) -> list[dict[str, str]]:
    return [pair.to_dict() for pair in pairs]


def find_conflicts(
    fixed: Iterable[KeyValuePair],
    extra: Iterable[KeyValuePair],
    *,
    case_insensitive: bool = False,
) -> list[str]:
    """返回 extra 中与 fixed 重复的键（保持 extra 的顺序）

    headers 按 HTTP 语义大小写不敏感比较，query 参数和 body 键精确比较。
    """

    def norm(key: str) -> str:
        return key.strip().lower() if case_insensitive else key.strip()

    fixed_keys = {norm(pair.key) for pair in fixed}
    return [pair.key for pair in extra if norm(pair.key) in fixed_keys]
