"""应用配置模块 - 使用 Pydantic Settings 管理环境变量"""

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="App Runner", description="应用名称")
    app_version: str = Field(default="0.1.0", description="应用版本")
    env: Literal["development", "production", "test"] = Field(
        default="development", description="运行环境"
    )
    debug: bool = Field(default=False, description="调试模式")
    log_level: str = Field(default="INFO", description="日志级别")

    # Server
    host: str = Field(default="0.0.0.0", description="服务器地址")
    port: int = Field(default=8000, description="服务器端口")
    reload: bool = Field(default=False, description="热重载")

    # Database
    database_url: str = Field(
        default="sqlite:///./apprunner.db",
        description="数据库连接 URL（审计库：apps/resources/runs/events）",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="允许的跨域源",
    )

    # Run execution
    http_timeout_seconds: float = Field(default=30.0, description="HTTP 出站请求超时（秒）")
    sql_timeout_seconds: float = Field(default=30.0, description="SQL 执行超时（秒）")
    sql_connect_timeout_seconds: int = Field(default=10, description="SQL 建连超时（秒）")
    max_response_bytes: int = Field(
        default=1_048_576, description="HTTP 响应体保存上限（字节），超出部分截断"
    )
    max_sql_rows: int = Field(default=1000, description="SQL 查询最多返回行数")

    # Authorization (OpenFGA 兼容的 check 接口，留空表示开发环境全部放行)
    openfga_api_url: str = Field(default="", description="授权服务地址")
    openfga_store_id: str = Field(default="", description="授权服务 store id")
    openfga_timeout_seconds: float = Field(default=5.0, description="授权检查超时（秒）")


# 全局配置实例
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """按配置初始化根日志器（只在应用启动时调用一次）"""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
