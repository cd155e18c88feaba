"""ResourceKind 枚举 - Resource 的连接目标类型"""

from enum import Enum


class ResourceKind(str, Enum):
    HTTP = "http"
    SQL = "sql"
