"""健康检查端点"""

from fastapi import APIRouter

from apprunner.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }
