"""OpenFGA 授权客户端 - AuthorizationService 的 httpx 实现

调用 OpenFGA HTTP API：
    POST {api_url}/stores/{store_id}/check
    {"tuple_key": {"user": ..., "relation": ..., "object": ...}}
    → {"allowed": true | false}

授权服务不可用时按拒绝处理（fail closed）。
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class OpenFgaAuthorizationService:
    """Implements: AuthorizationService"""

    def __init__(
        self,
        *,
        api_url: str,
        store_id: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.store_id = store_id
        self.timeout = timeout
        self._transport = transport

    async def check_permission(self, subject: str, relation: str, obj: str) -> bool:
        url = f"{self.api_url}/stores/{self.store_id}/check"
        payload = {"tuple_key": {"user": subject, "relation": relation, "object": obj}}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                allowed = bool(response.json().get("allowed", False))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("authorization check failed (%s %s %s): %s", subject, relation, obj, exc)
            return False

        logger.debug("authorization check %s %s %s -> %s", subject, relation, obj, allowed)
        return allowed


class AllowAllAuthorizationService:
    """开发环境：未配置授权服务时全部放行"""

    async def check_permission(self, subject: str, relation: str, obj: str) -> bool:
        return True
