"""AppRepository Port - App 的持久化接口

事务规则：
    - save 只 flush，不 commit
    - commit/rollback 由 EventStore 通过 TransactionManager 控制
"""

from typing import Protocol

from apprunner.domain.entities.app import App


class AppRepository(Protocol):
    def save(self, app: App) -> None:
        """新增或覆盖 App（按 id upsert），只 flush"""
        ...

    def get_by_id(self, app_id: str) -> App:
        """按 ID 获取 App

        Raises:
            NotFoundError: App 不存在
        """
        ...

    def find_by_id(self, app_id: str) -> App | None: ...
