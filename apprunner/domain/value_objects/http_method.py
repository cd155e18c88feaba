"""HttpMethod 枚举 - App 声明的出站 HTTP 方法"""

from __future__ import annotations

from enum import Enum


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"

    @classmethod
    def parse(cls, value: str | None) -> HttpMethod:
        """解析 HTTP 方法，空值默认 GET，未知方法抛 ValueError"""
        if value is None or not value.strip():
            return cls.GET
        return cls(value.strip().upper())

    def allows_body(self) -> bool:
        return self not in {HttpMethod.GET, HttpMethod.DELETE, HttpMethod.HEAD}
