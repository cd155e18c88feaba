"""API Container (composition root state holder).

This module only defines the structure of objects created in the real
composition root (`apprunner/interfaces/api/main.py`). Tests build their own
container with in-memory databases and fake transports.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from apprunner.application.ports.transaction_manager import TransactionManager
from apprunner.application.services.event_store import TransactionalEventStore
from apprunner.application.services.execution_dispatcher import ExecutionDispatcher
from apprunner.domain.ports.app_repository import AppRepository
from apprunner.domain.ports.authorization_service import AuthorizationService
from apprunner.domain.ports.event_repository import EventRepository
from apprunner.domain.ports.resource_repository import ResourceRepository
from apprunner.domain.ports.run_repository import RunRepository


@dataclass(frozen=True, slots=True)
class ApiContainer:
    """Typed container attached to `app.state.container`."""

    app_repository: Callable[[Session], AppRepository]
    resource_repository: Callable[[Session], ResourceRepository]
    run_repository: Callable[[Session], RunRepository]
    event_repository: Callable[[Session], EventRepository]
    transaction_manager: Callable[[Session], TransactionManager]
    dispatcher: ExecutionDispatcher
    authorization_service: AuthorizationService | None = None

    def event_store(self, session: Session) -> TransactionalEventStore:
        """同一个 Session 上的 Repository + 事务管理器组成一次原子写入"""
        return TransactionalEventStore(
            run_repository=self.run_repository(session),
            app_repository=self.app_repository(session),
            event_repository=self.event_repository(session),
            transaction_manager=self.transaction_manager(session),
        )
