"""FastAPI 应用入口（composition root）"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apprunner.application.services.execution_dispatcher import ExecutionDispatcher
from apprunner.config import configure_logging, settings
from apprunner.domain.exceptions import (
    AuthorizationDeniedError,
    DomainError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from apprunner.infrastructure.auth.openfga_authorization import (
    AllowAllAuthorizationService,
    OpenFgaAuthorizationService,
)
from apprunner.infrastructure.database.repositories import (
    SQLAlchemyAppRepository,
    SQLAlchemyEventRepository,
    SQLAlchemyResourceRepository,
    SQLAlchemyRunRepository,
)
from apprunner.infrastructure.database.schema import ensure_sqlite_schema
from apprunner.infrastructure.database.transaction_manager import SQLAlchemyTransactionManager
from apprunner.infrastructure.executors.http_client import HttpxHttpClient
from apprunner.infrastructure.executors.sql_executor import SqlAlchemyExecutionService
from apprunner.interfaces.api.container import ApiContainer
from apprunner.interfaces.api.routes import apps, health, runs

logger = logging.getLogger(__name__)


def _build_container() -> ApiContainer:
    dispatcher = ExecutionDispatcher(
        http_client=HttpxHttpClient(max_response_bytes=settings.max_response_bytes),
        sql_executor=SqlAlchemyExecutionService(
            max_rows=settings.max_sql_rows,
            connect_timeout=settings.sql_connect_timeout_seconds,
        ),
        http_timeout=settings.http_timeout_seconds,
        sql_timeout=settings.sql_timeout_seconds,
    )

    if settings.openfga_api_url and settings.openfga_store_id:
        authorization = OpenFgaAuthorizationService(
            api_url=settings.openfga_api_url,
            store_id=settings.openfga_store_id,
            timeout=settings.openfga_timeout_seconds,
        )
    else:
        logger.warning("授权服务未配置，所有 App 调用将被放行（仅限开发环境）")
        authorization = AllowAllAuthorizationService()

    return ApiContainer(
        app_repository=SQLAlchemyAppRepository,
        resource_repository=SQLAlchemyResourceRepository,
        run_repository=SQLAlchemyRunRepository,
        event_repository=SQLAlchemyEventRepository,
        transaction_manager=SQLAlchemyTransactionManager,
        dispatcher=dispatcher,
        authorization_service=authorization,
    )


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """领域异常 → HTTP 状态码

    Starlette 按异常类的 MRO 选择最具体的处理器，DomainError 只兜底其余子类。
    """

    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc)

    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(AuthorizationDeniedError)
    async def _denied(_: Request, exc: AuthorizationDeniedError) -> JSONResponse:
        return _error(403, exc)

    @app.exception_handler(DomainError)
    async def _domain_error(_: Request, exc: DomainError) -> JSONResponse:
        return _error(400, exc)

    @app.exception_handler(PersistenceError)
    async def _persistence_error(_: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("persistence failure: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "审计记录写入失败，请稍后重试"})


def create_app(container: ApiContainer | None = None) -> FastAPI:
    """创建 FastAPI 应用

    参数：
        container: 预先组装好的容器（测试注入）；为空时在 lifespan 中按配置组装
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        configure_logging()
        logger.info("%s v%s 启动中 (env=%s)", settings.app_name, settings.app_version, settings.env)
        if container is None:
            try:
                ensure_sqlite_schema()
            except Exception as exc:  # pragma: no cover - best effort startup helper
                logger.error("数据库初始化失败（请运行 Alembic 迁移）: %s", exc)
            app.state.container = _build_container()
        else:
            app.state.container = container
        yield
        logger.info("%s 关闭中", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="App 调用执行引擎：输入校验、模板替换、请求构建、执行与审计",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(apps.router, prefix="/api")
    app.include_router(runs.router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "apprunner.interfaces.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
