"""领域层异常定义

分层：
- DomainError 及其子类：业务规则违反，在任何出站调用之前被拒绝，不会产生 Run
- PersistenceError：审计写入失败，唯一的"致命"错误（对应 HTTP 500）
- TransportError 系列：出站调用边界上的技术错误，由 ExecutionDispatcher 捕获并
  转换为 Run 的 Failed 结果，不会继续向上传播
"""


class DomainError(Exception):
    """领域层异常基类

    用途：
    - 表示业务规则违反（如：App 覆盖了 Resource 已固定的键）
    - 表示领域不变式违反（如：状态流转非法）

    示例：
        if not name.strip():
            raise DomainError("name 不能为空")
    """

    pass


class ValidationError(DomainError):
    """输入或配置校验失败

    场景：必填输入缺失、类型解析失败、no-override 冲突、动态 JSON 请求体格式错误、
    模板引用了不存在的输入。
    """

    pass


class NotFoundError(DomainError):
    """实体不存在异常

    用途：
    - Repository 的 get_by_id() 在实体不存在时抛出
    - API 层统一转换为 404

    参数：
        entity_type: 实体类型（如："App"、"Resource"、"Run"）
        entity_id: 实体 ID
    """

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} 不存在: {entity_id}")


class AuthorizationDeniedError(DomainError):
    """授权服务拒绝了本次操作（在进入执行引擎之前短路）"""

    def __init__(self, subject: str, relation: str, obj: str):
        self.subject = subject
        self.relation = relation
        self.object = obj
        super().__init__(f"无权限: {subject} 不具备 {obj} 的 {relation} 关系")


class PersistenceError(Exception):
    """原子写入（Run + Events）失败

    不继承 DomainError：它不是业务规则问题，调用方无法通过修改输入来修复，
    API 层返回 500。
    """

    pass


class TransportError(Exception):
    """出站网络调用失败（DNS、连接拒绝、URL 非法等）"""

    pass


class TransportTimeoutError(TransportError):
    """出站网络调用超时"""

    pass


class SqlExecutionError(Exception):
    """SQL 执行失败（建连、隧道、语句执行）"""

    pass


class SqlTimeoutError(SqlExecutionError):
    """查询超过时限，已在数据库连接上取消"""

    pass
