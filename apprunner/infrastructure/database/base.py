"""ORM 模型基类

Base.metadata 包含所有表的元数据（Alembic 迁移与 ensure_sqlite_schema 使用）。
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """ORM 模型基类（SQLAlchemy 2.0 DeclarativeBase）"""

    pass
