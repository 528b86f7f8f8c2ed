"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层统一捕获与用户提示。
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chat_core.domain.attempts import ProviderFailure


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 thread_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """调用方输入校验失败，本轮对话直接拒绝。"""


class NotFoundError(BusinessError):
    """线程不存在（或不属于当前用户）。"""

    def __init__(self, code: str, message: str, http_status: int = 404, **extra):
        super().__init__(code, message, http_status, **extra)


class PersistenceError(BusinessError):
    """存储读写失败。对话过程中只记录日志，不影响已生成的回复。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)


class ConfigurationError(BusinessError):
    """装配错误，例如 provider_order 中出现未知 Provider。"""


class ProviderError(BusinessError):
    """单次 Provider 调用失败，由 FallbackChain 内部吸收。

    下游只读取 ``failure.kind`` 决定重试或切换，不做类型探测。
    """

    def __init__(self, failure: "ProviderFailure", provider: str = ""):
        self.failure = failure
        super().__init__(
            code=failure.kind.value.upper(),
            message=failure.message,
            http_status=502,
            provider=provider,
        )
