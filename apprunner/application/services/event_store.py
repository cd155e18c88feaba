"""TransactionalEventStore - 实体终态与未提交事件的原子写入

审计一致性的核心：
- Run 行与它的全部事件在同一个事务里写入：要么都可见，要么都不可见
- Repository 只 flush，commit 只在这里发生一次
- 任何失败都回滚并抛 PersistenceError（API 层返回 500）
"""

from __future__ import annotations

import logging

from apprunner.application.ports.transaction_manager import TransactionManager
from apprunner.domain.entities.app import App
from apprunner.domain.entities.run import Run
from apprunner.domain.exceptions import DomainError, PersistenceError
from apprunner.domain.ports.app_repository import AppRepository
from apprunner.domain.ports.event_repository import EventRepository
from apprunner.domain.ports.run_repository import RunRepository

logger = logging.getLogger(__name__)


class TransactionalEventStore:
    def __init__(
        self,
        *,
        run_repository: RunRepository,
        app_repository: AppRepository,
        event_repository: EventRepository,
        transaction_manager: TransactionManager,
    ) -> None:
        self.run_repository = run_repository
        self.app_repository = app_repository
        self.event_repository = event_repository
        self.transaction_manager = transaction_manager

    def commit_run(self, run: Run) -> Run:
        """原子写入终态 Run 及其事件，返回事件已提交的 Run

        Raises:
            DomainError: Run 尚未进入终态或没有事件
            PersistenceError: 写入失败（已回滚）
        """
        if not run.is_terminal:
            raise DomainError(f"只能持久化终态 Run，当前状态：{run.status.value}")
        if not run.uncommitted_events:
            raise DomainError(f"Run {run.id} 没有待提交的事件")

        try:
            self.run_repository.save(run)
            for event in run.uncommitted_events:
                self.event_repository.append(event)
            self.transaction_manager.commit()
        except Exception as exc:
            self._rollback()
            logger.error("Run %s 持久化失败，已回滚: %s", run.id, exc)
            raise PersistenceError(f"Run {run.id} 持久化失败") from exc

        logger.info(
            "Run %s committed: status=%s events=%d",
            run.id,
            run.status.value,
            len(run.uncommitted_events),
        )
        return run.mark_events_committed()

    def commit_app(self, app: App) -> App:
        """原子写入 App 配置及其 AppCreated/AppUpdated 事件"""
        if not app.uncommitted_events:
            raise DomainError(f"App {app.id} 没有待提交的事件")

        try:
            self.app_repository.save(app)
            for event in app.uncommitted_events:
                self.event_repository.append(event)
            self.transaction_manager.commit()
        except Exception as exc:
            self._rollback()
            logger.error("App %s 持久化失败，已回滚: %s", app.id, exc)
            raise PersistenceError(f"App {app.id} 持久化失败") from exc

        logger.info("App %s committed: events=%d", app.id, len(app.uncommitted_events))
        return app.mark_events_committed()

    def _rollback(self) -> None:
        try:
            self.transaction_manager.rollback()
        except Exception:
            # 回滚失败只记录，优先抛出原始异常
            logger.exception("rollback failed")
