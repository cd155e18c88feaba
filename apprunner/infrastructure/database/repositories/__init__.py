"""SQLAlchemy Repository 实现"""

from apprunner.infrastructure.database.repositories.app_repository import SQLAlchemyAppRepository
from apprunner.infrastructure.database.repositories.event_repository import (
    SQLAlchemyEventRepository,
)
from apprunner.infrastructure.database.repositories.resource_repository import (
    SQLAlchemyResourceRepository,
)
from apprunner.infrastructure.database.repositories.run_repository import SQLAlchemyRunRepository

__all__ = [
    "SQLAlchemyAppRepository",
    "SQLAlchemyEventRepository",
    "SQLAlchemyResourceRepository",
    "SQLAlchemyRunRepository",
]
