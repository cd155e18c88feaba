"""AuthorizationService Port - 关系型授权检查（OpenFGA 风格）

调用发生在执行引擎之前；拒绝时直接短路，不创建 Run。
"""

from typing import Protocol


class AuthorizationService(Protocol):
    async def check_permission(self, subject: str, relation: str, obj: str) -> bool:
        """subject 是否对 obj 具有 relation 关系，如 ("user:u1", "run_app", "app:a1")"""
        ...
