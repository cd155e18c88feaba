"""ORM 模型 - 审计库表映射

表：
- resources: 连接目标（执行引擎只读）
- apps:      App 配置（headers/params/body/inputs/sql_config 以 JSON 存储）
- runs:      每次调用一行，只写终态
- events:    只追加的审计事件（event_data 为 JSON 文本）

设计原则：
- SQLAlchemy 2.0 风格（Mapped、mapped_column）
- 主键使用 UUID 字符串（与领域实体一致）
- 时间戳存 naive UTC，Repository 负责时区转换
"""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apprunner.infrastructure.database.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ResourceModel(Base):
    """Resource ORM 模型

    config 字段存储带标签的连接配置：{"kind": "http" | "sql", ...}
    """

    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Resource ID（UUID）")
    space_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="所属 Space")
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Resource 名称")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", comment="描述")
    kind: Mapped[str] = mapped_column(String(20), nullable=False, comment="http / sql")
    config: Mapped[dict] = mapped_column(JSON, nullable=False, comment="连接配置")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="更新时间")

    __table_args__ = (Index("idx_resources_space_id", "space_id"),)


class AppModel(Base):
    """App ORM 模型

    外键约束：
    - resource_id → resources.id（Resource 被删除前必须先处理依赖它的 App）
    """

    __tablename__ = "apps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="App ID（UUID）")
    folder_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="所属 Folder")
    resource_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("resources.id"), nullable=False, comment="引用的 Resource"
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="App 名称")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", comment="描述")
    inputs: Mapped[list] = mapped_column(JSON, nullable=False, default=list, comment="输入声明")
    http_method: Mapped[str] = mapped_column(String(10), nullable=False, default="GET")
    url_path: Mapped[str | None] = mapped_column(Text, nullable=True, comment="URL 路径模板")
    url_parameters: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    headers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    body: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    use_dynamic_json_body: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    use_json_body: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sql_config: Mapped[dict | None] = mapped_column(JSON, nullable=True, comment="SQL 查询配置")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="更新时间")

    __table_args__ = (
        Index("idx_apps_folder_id", "folder_id"),
        Index("idx_apps_resource_id", "resource_id"),
    )


class RunModel(Base):
    """Run ORM 模型（一行一次调用，只写终态）

    索引：
    - idx_runs_app_id_created_at: 按 App 分页查询
    - idx_runs_status: 按状态过滤
    """

    __tablename__ = "runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Run ID（UUID）")
    app_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="被调用的 App")
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, comment="发起调用的用户")
    status: Mapped[str] = mapped_column(String(20), nullable=False, comment="Run 状态")
    input_values: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list, comment="提交的输入（secret 已遮盖）"
    )
    executable_request: Mapped[dict | None] = mapped_column(
        JSON, nullable=True, comment="脱敏后的请求"
    )
    response: Mapped[dict | None] = mapped_column(JSON, nullable=True, comment="执行结果")
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True, comment="HTTP 状态码")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True, comment="错误信息")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="创建时间")
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_runs_app_id_created_at", "app_id", "created_at"),
        Index("idx_runs_status", "status"),
    )


class EventModel(Base):
    """审计事件 ORM 模型（只追加）"""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    event_data: Mapped[str] = mapped_column(Text, nullable=False, comment="JSON 事件数据")
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    actor_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_events_entity", "entity_type", "entity_id"),
        Index("idx_events_occurred_at", "occurred_at"),
    )
