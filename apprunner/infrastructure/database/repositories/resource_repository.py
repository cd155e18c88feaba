"""SQLAlchemy Resource Repository 实现

执行引擎只读 Resource；save() 供开发环境播种与测试使用（只 flush）。
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from apprunner.domain.entities.resource import HttpResourceConfig, Resource, SqlResourceConfig
from apprunner.domain.exceptions import NotFoundError
from apprunner.domain.value_objects.key_value import pairs_from_dicts, pairs_to_dicts
from apprunner.domain.value_objects.resource_kind import ResourceKind
from apprunner.infrastructure.database.models import ResourceModel
from apprunner.infrastructure.database.repositories.datetime_utils import to_aware, to_naive


def config_to_dict(resource: Resource) -> dict[str, Any]:
    match resource.config:
        case HttpResourceConfig() as config:
            return {
                "base_url": config.base_url,
                "url_parameters": pairs_to_dicts(config.url_parameters),
                "headers": pairs_to_dicts(config.headers),
                "body": pairs_to_dicts(config.body),
            }
        case SqlResourceConfig() as config:
            return {
                "host": config.host,
                "port": config.port,
                "database_name": config.database_name,
                "username": config.username,
                "password": config.password,
                "auth_scheme": config.auth_scheme,
                "engine": config.engine,
                "use_ssl": config.use_ssl,
                "enable_ssh_tunnel": config.enable_ssh_tunnel,
                "connection_options": pairs_to_dicts(config.connection_options),
            }


def config_from_dict(kind: ResourceKind, data: dict[str, Any]) -> HttpResourceConfig | SqlResourceConfig:
    if kind is ResourceKind.HTTP:
        return HttpResourceConfig(
            base_url=data["base_url"],
            url_parameters=pairs_from_dicts(data.get("url_parameters")),
            headers=pairs_from_dicts(data.get("headers")),
            body=pairs_from_dicts(data.get("body")),
        )
    return SqlResourceConfig(
        host=data["host"],
        port=int(data["port"]),
        database_name=data["database_name"],
        username=data["username"],
        password=data.get("password"),
        auth_scheme=data.get("auth_scheme", "username_password"),
        engine=data.get("engine", "postgres"),
        use_ssl=bool(data.get("use_ssl", False)),
        enable_ssh_tunnel=bool(data.get("enable_ssh_tunnel", False)),
        connection_options=pairs_from_dicts(data.get("connection_options")),
    )


class SQLAlchemyResourceRepository:
    """Implements: ResourceRepository Protocol"""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _to_entity(self, model: ResourceModel) -> Resource:
        kind = ResourceKind(model.kind)
        return Resource(
            id=model.id,
            space_id=model.space_id,
            name=model.name,
            description=model.description,
            config=config_from_dict(kind, model.config),
            created_at=to_aware(model.created_at),
            updated_at=to_aware(model.updated_at),
        )

    def _to_model(self, entity: Resource) -> ResourceModel:
        return ResourceModel(
            id=entity.id,
            space_id=entity.space_id,
            name=entity.name,
            description=entity.description,
            kind=entity.kind.value,
            config=config_to_dict(entity),
            created_at=to_naive(entity.created_at),
            updated_at=to_naive(entity.updated_at),
        )

    def save(self, resource: Resource) -> None:
        self.session.merge(self._to_model(resource))
        self.session.flush()

    def get_by_id(self, resource_id: str) -> Resource:
        """Raises: NotFoundError"""
        model = self.session.scalars(select(ResourceModel).where(ResourceModel.id == resource_id)).first()
        if model is None:
            raise NotFoundError(entity_type="Resource", entity_id=resource_id)
        return self._to_entity(model)
