"""数据库引擎与会话工厂

设计说明：
- 审计库使用同步引擎 + 同步 Session，Repository 全部同步实现
- 从配置读取 database_url
- SQLite 需要 check_same_thread=False（FastAPI 线程池中复用连接）
"""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from apprunner.config import settings


def get_sync_engine(database_url: str | None = None) -> Engine:
    """创建同步数据库引擎

    配置说明：
    - echo: 调试模式打印 SQL
    - pool_pre_ping: 连接前检查（避免使用失效连接）
    - SQLite 不使用 pool_size / max_overflow
    """
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.debug,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


# 全局同步引擎实例
sync_engine = get_sync_engine()

SessionLocal = sessionmaker(
    bind=sync_engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db_session() -> Generator[Session, None, None]:
    """FastAPI 依赖：每个请求一个 Session，请求结束后关闭"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
