"""RunRepository Port - Run 的持久化接口

设计原则:
    - 使用 Protocol（结构化子类型，不需要显式继承）
    - Repository 不调用 commit()，事务由 EventStore 控制
    - Run 只写入终态（一次插入），之后不再修改
"""

from typing import Protocol

from apprunner.domain.entities.run import Run
from apprunner.domain.value_objects.run_status import RunStatus


class RunRepository(Protocol):
    def save(self, run: Run) -> None:
        """插入 Run，只 flush"""
        ...

    def get_by_id(self, run_id: str) -> Run:
        """按 ID 获取 Run

        Raises:
            NotFoundError: Run 不存在
        """
        ...

    def list_by_app(
        self,
        app_id: str,
        *,
        status: RunStatus | None = None,
        skip: int = 0,
        take: int = 50,
    ) -> list[Run]:
        """按 App 列出 Run（created_at 倒序）"""
        ...

    def count_by_app(self, app_id: str, *, status: RunStatus | None = None) -> int: ...

    def list_by_status(self, status: RunStatus, *, skip: int = 0, take: int = 50) -> list[Run]:
        """跨 App 按状态列出 Run（created_at 倒序）"""
        ...

    def count_by_status(self, status: RunStatus) -> int: ...
