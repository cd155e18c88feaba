"""ResourceRepository Port - Resource 只读查询接口

Resource 的增删改由 Resource 管理子系统负责，执行引擎只按 ID 读取。
save() 只用于开发环境播种数据和测试。
"""

from typing import Protocol

from apprunner.domain.entities.resource import Resource


class ResourceRepository(Protocol):
    def get_by_id(self, resource_id: str) -> Resource:
        """按 ID 获取 Resource

        Raises:
            NotFoundError: Resource 不存在
        """
        ...

    def save(self, resource: Resource) -> None: ...
