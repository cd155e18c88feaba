"""Run API 路由

端点:
    - POST /api/apps/{app_id}/runs   - 调用 App（返回 SUCCEEDED 或 FAILED 的 Run）
    - GET  /api/apps/{app_id}/runs   - 分页列出 App 的 Run
    - GET  /api/runs?status=        - 跨 App 按状态分页列出 Run
    - GET  /api/runs/{run_id}        - 获取单个 Run
    - GET  /api/runs/{run_id}/events - 获取 Run 的审计事件

领域异常由 main.py 中注册的异常处理器统一转换为 HTTP 状态码。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from apprunner.application.use_cases.create_run import CreateRunInput, CreateRunUseCase
from apprunner.application.use_cases.query_runs import (
    MAX_TAKE,
    GetRunUseCase,
    ListRunEventsUseCase,
    ListRunsByStatusUseCase,
    ListRunsUseCase,
)
from apprunner.domain.entities.current_user import CurrentUser
from apprunner.infrastructure.database.engine import get_db_session
from apprunner.interfaces.api.container import ApiContainer
from apprunner.interfaces.api.dependencies.container import get_container
from apprunner.interfaces.api.dependencies.current_user import get_current_user
from apprunner.interfaces.api.dto.run_dto import (
    CreateRunRequest,
    RunEventResponse,
    RunListResponse,
    RunResponse,
)

router = APIRouter(tags=["Runs"])


@router.post(
    "/apps/{app_id}/runs",
    response_model=RunResponse,
    summary="调用 App",
    description="校验输入、构建并发送请求，返回已持久化的 Run（执行失败也返回 200 + FAILED）",
)
async def create_run(
    app_id: str,
    request: CreateRunRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> RunResponse:
    use_case = CreateRunUseCase(
        app_repository=container.app_repository(db),
        resource_repository=container.resource_repository(db),
        dispatcher=container.dispatcher,
        event_store=container.event_store(db),
        authorization_service=container.authorization_service,
    )
    run = await use_case.execute(
        CreateRunInput(
            app_id=app_id,
            current_user=current_user,
            input_values=request.input_pairs(),
            dynamic_body=request.dynamic_body_text(),
        )
    )
    return RunResponse.from_entity(run)


@router.get(
    "/apps/{app_id}/runs",
    response_model=RunListResponse,
    summary="列出 App 的 Run",
)
def list_runs(
    app_id: str,
    status: str | None = Query(default=None, description="pending / succeeded / failed"),
    skip: int = Query(default=0, ge=0, description="偏移量"),
    take: int = Query(default=50, ge=1, le=MAX_TAKE, description="返回数量上限"),
    _user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> RunListResponse:
    page = ListRunsUseCase(container.run_repository(db), container.app_repository(db)).execute(
        app_id, status=status, skip=skip, take=take
    )
    return RunListResponse(
        items=[RunResponse.from_entity(run) for run in page.items],
        total=page.total,
        skip=page.skip,
        take=page.take,
    )


@router.get("/runs", response_model=RunListResponse, summary="按状态列出 Run")
def list_runs_by_status(
    status: str = Query(description="pending / succeeded / failed"),
    skip: int = Query(default=0, ge=0, description="偏移量"),
    take: int = Query(default=50, ge=1, le=MAX_TAKE, description="返回数量上限"),
    _user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> RunListResponse:
    page = ListRunsByStatusUseCase(container.run_repository(db)).execute(status, skip=skip, take=take)
    return RunListResponse(
        items=[RunResponse.from_entity(run) for run in page.items],
        total=page.total,
        skip=page.skip,
        take=page.take,
    )


@router.get("/runs/{run_id}", response_model=RunResponse, summary="获取 Run")
def get_run(
    run_id: str,
    _user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> RunResponse:
    run = GetRunUseCase(container.run_repository(db)).execute(run_id)
    return RunResponse.from_entity(run)


@router.get(
    "/runs/{run_id}/events",
    response_model=list[RunEventResponse],
    summary="获取 Run 的审计事件",
)
def list_run_events(
    run_id: str,
    _user: CurrentUser = Depends(get_current_user),
    container: ApiContainer = Depends(get_container),
    db: Session = Depends(get_db_session),
) -> list[RunEventResponse]:
    events = ListRunEventsUseCase(
        container.run_repository(db), container.event_repository(db)
    ).execute(run_id)
    return [RunEventResponse.from_entity(event) for event in events]


__all__ = ["router"]
