"""Pytest 配置文件 - 全局 fixtures"""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from apprunner.domain.entities.current_user import CurrentUser
from apprunner.domain.entities.resource import Resource
from apprunner.domain.value_objects.key_value import KeyValuePair
from apprunner.infrastructure.database import models  # noqa: F401
from apprunner.infrastructure.database.base import Base


@pytest.fixture
def engine():
    """内存 SQLite 引擎（StaticPool：所有 Session 共享同一个连接）"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def current_user() -> CurrentUser:
    return CurrentUser(id="user-1", email="ada@example.com", name="Ada Lovelace")


@pytest.fixture
def http_resource() -> Resource:
    """HTTP Resource：固定 Authorization header 与 api_version 参数"""
    return Resource.create_http(
        space_id="space-1",
        name="Orders API",
        base_url="https://api.example.com",
        headers=[KeyValuePair("Authorization", "Bearer s3cr3t-token")],
        url_parameters=[KeyValuePair("api_version", "2")],
    )


@pytest.fixture
def sql_resource() -> Resource:
    return Resource.create_sql(
        space_id="space-1",
        name="Warehouse",
        host="db.internal",
        port=5432,
        database_name="warehouse",
        username="reporter",
        password="pg-pa55word",
    )
