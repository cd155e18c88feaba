"""RunStatus 枚举 - Run 生命周期状态

业务定义：
- Run 表示一次 App 调用实例，每次用户触发就是一次出站调用
- 状态流转：PENDING → (SUCCEEDED | FAILED)，终态不可再变
- 不做自动重试：重试是调用方发起的新 Run

设计原则：
- 继承 str：序列化/数据库存储友好
- 通过 can_transition_to() 固化状态机不变式
"""

from __future__ import annotations

from enum import Enum


class RunStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def can_transition_to(self, target: RunStatus) -> bool:
        allowed: dict[RunStatus, set[RunStatus]] = {
            RunStatus.PENDING: {RunStatus.SUCCEEDED, RunStatus.FAILED},
            RunStatus.SUCCEEDED: set(),
            RunStatus.FAILED: set(),
        }
        return target in allowed[self]

    def is_terminal(self) -> bool:
        return self in {RunStatus.SUCCEEDED, RunStatus.FAILED}
