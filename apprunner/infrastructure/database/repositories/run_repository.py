"""SQLAlchemy Run Repository 实现

职责:
    1. 转换: 领域实体 ↔ ORM 模型
    2. 持久化: 插入终态 Run、查询
    3. 异常转换: 不存在 → NotFoundError

事务边界规则:
    - Repository 不调用 session.commit()
    - 只使用 add/flush
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from apprunner.domain.entities.executable_request import request_from_dict
from apprunner.domain.entities.execution_result import ExecutionResult
from apprunner.domain.entities.run import Run
from apprunner.domain.exceptions import NotFoundError
from apprunner.domain.value_objects.run_status import RunStatus
from apprunner.infrastructure.database.models import RunModel
from apprunner.infrastructure.database.repositories.datetime_utils import to_aware, to_naive


class SQLAlchemyRunRepository:
    """Implements: RunRepository Protocol"""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ==================== Assembler 方法 ====================

    def _to_entity(self, model: RunModel) -> Run:
        return Run(
            id=model.id,
            app_id=model.app_id,
            user_id=model.user_id,
            status=RunStatus(model.status),
            input_values=tuple(dict(item) for item in model.input_values or []),
            executable_request=(
                request_from_dict(model.executable_request) if model.executable_request else None
            ),
            result=ExecutionResult.from_dict(model.response) if model.response else None,
            error_message=model.error_message,
            created_at=to_aware(model.created_at),
            started_at=to_aware(model.started_at),
            completed_at=to_aware(model.completed_at),
        )

    def _to_model(self, entity: Run) -> RunModel:
        return RunModel(
            id=entity.id,
            app_id=entity.app_id,
            user_id=entity.user_id,
            status=entity.status.value,
            input_values=[dict(item) for item in entity.input_values],
            executable_request=(
                entity.executable_request.to_dict() if entity.executable_request else None
            ),
            response=entity.result.to_dict() if entity.result else None,
            status_code=entity.result.status_code if entity.result else None,
            error_message=entity.error_message,
            created_at=to_naive(entity.created_at),
            started_at=to_naive(entity.started_at),
            completed_at=to_naive(entity.completed_at),
        )

    # ==================== Repository 方法 ====================

    def save(self, run: Run) -> None:
        self.session.add(self._to_model(run))
        self.session.flush()

    def get_by_id(self, run_id: str) -> Run:
        """Raises: NotFoundError"""
        model = self.session.scalars(select(RunModel).where(RunModel.id == run_id)).first()
        if model is None:
            raise NotFoundError(entity_type="Run", entity_id=run_id)
        return self._to_entity(model)

    def list_by_app(
        self,
        app_id: str,
        *,
        status: RunStatus | None = None,
        skip: int = 0,
        take: int = 50,
    ) -> list[Run]:
        """Returns: Run 列表，按 created_at 倒序排列（最新在前）"""
        stmt = select(RunModel).where(RunModel.app_id == app_id)
        if status is not None:
            stmt = stmt.where(RunModel.status == status.value)
        stmt = stmt.order_by(RunModel.created_at.desc(), RunModel.id).offset(skip).limit(take)
        return [self._to_entity(model) for model in self.session.scalars(stmt).all()]

    def count_by_app(self, app_id: str, *, status: RunStatus | None = None) -> int:
        stmt = select(func.count(RunModel.id)).where(RunModel.app_id == app_id)
        if status is not None:
            stmt = stmt.where(RunModel.status == status.value)
        return int(self.session.scalar(stmt) or 0)

    def list_by_status(self, status: RunStatus, *, skip: int = 0, take: int = 50) -> list[Run]:
        stmt = (
            select(RunModel)
            .where(RunModel.status == status.value)
            .order_by(RunModel.created_at.desc(), RunModel.id)
            .offset(skip)
            .limit(take)
        )
        return [self._to_entity(model) for model in self.session.scalars(stmt).all()]

    def count_by_status(self, status: RunStatus) -> int:
        stmt = select(func.count(RunModel.id)).where(RunModel.status == status.value)
        return int(self.session.scalar(stmt) or 0)
