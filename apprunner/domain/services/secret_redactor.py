"""Secret Redactor - 持久化 / 回显副本的凭据脱敏

规则：
1. 键名命中凭据模式的 header / query 参数 / body 字段，值替换为 REDACTED
   （Bearer / Basic 前缀保留，便于排查认证方式）
2. SQL 连接密码替换为 REDACTED；URL 中 userinfo 的密码同样替换
3. secret 类型输入在请求副本中按结构遮盖：调用方用 ValidatedInputs.masked(REDACTED)
   重新渲染模板得到副本，再交给 redact_request
4. 已知的明文秘密（secret 输入、Resource 凭据 header 值、SQL 密码）出现在自由文本里
   （响应体、响应 header、错误信息、动态 JSON 请求体）时按子串遮盖

只作用于副本：ExecutionDispatcher 始终拿到未脱敏的请求。
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace

from apprunner.domain.entities.executable_request import (
    ExecutableRequest,
    HttpExecutableRequest,
    SqlExecutableRequest,
)
from apprunner.domain.entities.execution_result import ExecutionResult
from apprunner.domain.value_objects.key_value import KeyValuePair

REDACTED = "---- redacted ----"

CREDENTIAL_KEYS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "api-key",
        "x-auth-token",
    }
)
CREDENTIAL_FRAGMENTS = ("token", "secret", "password", "api-key", "api_key", "apikey")
SCHEME_PREFIXES = ("Bearer ", "Basic ")

# 短于该长度的明文秘密只做整值匹配，避免把普通文本里的单个字符也遮掉
MIN_SUBSTRING_SECRET_LENGTH = 4

_URL_USERINFO = re.compile(r"(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*://)(?P<user>[^:/@\s]*):(?P<password>[^@/\s]+)@")


def is_credential_key(key: str) -> bool:
    normalized = (key or "").strip().lower()
    if normalized in CREDENTIAL_KEYS:
        return True
    return any(fragment in normalized for fragment in CREDENTIAL_FRAGMENTS)


def redact_credential_value(value: str) -> str:
    for prefix in SCHEME_PREFIXES:
        if value.lower().startswith(prefix.lower()):
            return value[: len(prefix)] + REDACTED
    return REDACTED


def _credential_literal(value: str) -> str:
    """去掉认证方案前缀后的明文部分"""
    for prefix in SCHEME_PREFIXES:
        if value.lower().startswith(prefix.lower()):
            return value[len(prefix):].strip()
    return value


def mask_url_userinfo(text: str) -> str:
    return _URL_USERINFO.sub(lambda m: f"{m.group('scheme')}{m.group('user')}:{REDACTED}@", text)


@dataclass(frozen=True)
class SecretRedactor:
    """持有一次 Run 中已知的明文秘密集合"""

    secrets: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def for_request(cls, request: ExecutableRequest, extra_secrets: Iterable[str] = ()) -> SecretRedactor:
        """从未脱敏的请求中收集秘密（凭据键的值、SQL 密码），再并入 extra_secrets"""
        found: set[str] = {s for s in extra_secrets if s}
        match request:
            case HttpExecutableRequest():
                for pair in (*request.headers, *request.url_parameters, *request.body):
                    if is_credential_key(pair.key) and pair.value:
                        found.add(pair.value)
                        literal = _credential_literal(pair.value)
                        if literal:
                            found.add(literal)
                for match in _URL_USERINFO.finditer(request.url):
                    found.add(match.group("password"))
            case SqlExecutableRequest():
                if request.target.password:
                    found.add(request.target.password)
        return cls(secrets=frozenset(found))

    def redact_text(self, text: str | None) -> str | None:
        if text is None:
            return None
        if text in self.secrets:
            return REDACTED
        result = mask_url_userinfo(text)
        # 长的先替换，避免短秘密是长秘密子串时只遮一半
        for secret in sorted(self.secrets, key=len, reverse=True):
            if len(secret) >= MIN_SUBSTRING_SECRET_LENGTH and secret in result:
                result = result.replace(secret, REDACTED)
        return result

    def redact_pairs(self, pairs: Iterable[KeyValuePair]) -> tuple[KeyValuePair, ...]:
        redacted = []
        for pair in pairs:
            if is_credential_key(pair.key):
                value = redact_credential_value(pair.value)
            else:
                value = self.redact_text(pair.value) or ""
            redacted.append(KeyValuePair(key=pair.key, value=value))
        return tuple(redacted)

    def redact_headers(self, headers: Mapping[str, str]) -> dict[str, str]:
        return {
            key: redact_credential_value(value) if is_credential_key(key) else (self.redact_text(value) or "")
            for key, value in headers.items()
        }

    def redact_request(self, request: ExecutableRequest) -> ExecutableRequest:
        match request:
            case HttpExecutableRequest():
                return replace(
                    request,
                    url=self.redact_text(request.url) or "",
                    url_parameters=self.redact_pairs(request.url_parameters),
                    headers=self.redact_pairs(request.headers),
                    body=self.redact_pairs(request.body),
                    raw_body=self.redact_text(request.raw_body),
                )
            case SqlExecutableRequest():
                target = request.target
                if target.password:
                    target = target.with_password(REDACTED)
                return replace(
                    request,
                    target=replace(
                        target,
                        connection_options=self.redact_pairs(target.connection_options),
                    ),
                    statement=self.redact_text(request.statement) or "",
                    parameters=tuple(
                        (name, self.redact_text(value) or "") for name, value in request.parameters
                    ),
                )

    def redact_result(self, result: ExecutionResult) -> ExecutionResult:
        return result.with_redacted(
            response_headers=self.redact_headers(result.response_headers),
            response_body=self.redact_text(result.response_body),
            error_message=self.redact_text(result.error_message),
        )
