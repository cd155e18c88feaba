"""SQLAlchemy App Repository 实现

事务边界规则:
    - Repository 不调用 session.commit()
    - save 使用 merge + flush（新增与覆盖更新同一语义）
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from apprunner.domain.entities.app import App
from apprunner.domain.entities.input import Input
from apprunner.domain.entities.sql_query_config import SqlQueryConfig
from apprunner.domain.exceptions import NotFoundError
from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.key_value import pairs_from_dicts, pairs_to_dicts
from apprunner.infrastructure.database.models import AppModel
from apprunner.infrastructure.database.repositories.datetime_utils import to_aware, to_naive


class SQLAlchemyAppRepository:
    """Implements: AppRepository Protocol"""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _to_entity(self, model: AppModel) -> App:
        return App(
            id=model.id,
            folder_id=model.folder_id,
            resource_id=model.resource_id,
            name=model.name,
            description=model.description,
            inputs=tuple(Input.from_dict(item) for item in model.inputs or []),
            http_method=HttpMethod(model.http_method),
            url_path=model.url_path,
            url_parameters=pairs_from_dicts(model.url_parameters),
            headers=pairs_from_dicts(model.headers),
            body=pairs_from_dicts(model.body),
            use_dynamic_json_body=model.use_dynamic_json_body,
            use_json_body=model.use_json_body,
            sql_config=SqlQueryConfig.from_dict(model.sql_config) if model.sql_config else None,
            created_at=to_aware(model.created_at),
            updated_at=to_aware(model.updated_at),
        )

    def _to_model(self, entity: App) -> AppModel:
        return AppModel(
            id=entity.id,
            folder_id=entity.folder_id,
            resource_id=entity.resource_id,
            name=entity.name,
            description=entity.description,
            inputs=[field_def.to_dict() for field_def in entity.inputs],
            http_method=entity.http_method.value,
            url_path=entity.url_path,
            url_parameters=pairs_to_dicts(entity.url_parameters),
            headers=pairs_to_dicts(entity.headers),
            body=pairs_to_dicts(entity.body),
            use_dynamic_json_body=entity.use_dynamic_json_body,
            use_json_body=entity.use_json_body,
            sql_config=entity.sql_config.to_dict() if entity.sql_config else None,
            created_at=to_naive(entity.created_at),
            updated_at=to_naive(entity.updated_at),
        )

    def save(self, app: App) -> None:
        self.session.merge(self._to_model(app))
        self.session.flush()

    def get_by_id(self, app_id: str) -> App:
        """Raises: NotFoundError"""
        app = self.find_by_id(app_id)
        if app is None:
            raise NotFoundError(entity_type="App", entity_id=app_id)
        return app

    def find_by_id(self, app_id: str) -> App | None:
        model = self.session.scalars(select(AppModel).where(AppModel.id == app_id)).first()
        return self._to_entity(model) if model is not None else None
