"""App 配置 API 路由

端点:
    - POST /api/apps          - 创建 App
    - PUT  /api/apps/{app_id} - 更新 App（整体替换）
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from apprunner.application.use_cases.save_app import SaveAppInput, SaveAppUseCase
from apprunner.domain.entities.current_user import CurrentUser
from apprunner.infrastructure.database.engine import get_db_session
from apprunner.interfaces.api.container import ApiContainer
from apprunner.interfaces.api.dependencies.container import get_container
from apprunner.interfaces.api.dependencies.current_user import get_current_user
from apprunner.interfaces.api.dto.app_dto import AppResponse, SaveAppRequest

router = APIRouter(prefix="/apps", tags=["Apps"])


def _to_input(request: SaveAppRequest, user: CurrentUser, app_id: str | None) -> SaveAppInput:
    return SaveAppInput(
        current_user=user,
        app_id=app_id,
        folder_id=request.folder_id,
        resource_id=request.resource_id,
        name=request.name,
        description=request.description,
        inputs=[item.to_domain() for item in request.inputs],
        http_method=request.http_method,
        url_path=request.url_path,
        url_parameters=[pair.to_domain() for pair in request.url_parameters],
        headers=[pair.to_domain() for pair in request.headers],
        body=[pair.to_domain() for pair in request.body],
        use_dynamic_json_body=request.use_dynamic_json_body,
        use_json_body=request.use_json_body,
        sql_config=request.sql_config.to_domain() if request.sql_config else None,
    )


def _use_case(container: ApiContainer, db: Session) -> SaveAppUseCase:
    return SaveAppUseCase(
        app_repository=container.app_repository(db),
        resource_repository=container.resource_repository(db),
        event_store=container.event_store(db),
    )


@router.post("", response_model=AppResponse, status_code=status.HTTP_201_CREATED, summary="创建 App")
def post_app(
    request: SaveAppRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> AppResponse:
    app = _use_case(container, db).execute(_to_input(request, current_user, None))
    return AppResponse.from_entity(app)


@router.put("/{app_id}", response_model=AppResponse, summary="更新 App")
def put_app(
    app_id: str,
    request: SaveAppRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> AppResponse:
    app = _use_case(container, db).execute(_to_input(request, current_user, app_id))
    return AppResponse.from_entity(app)


__all__ = ["router"]
