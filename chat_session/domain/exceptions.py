"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 api 层统一捕获并转换为对调用方友好的结果。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NOT_LOGGED_IN"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 chain_id、endpoint 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class AuthError(BusinessError):
    """未登录、凭证无效或后端拒绝认证。"""


class ChainNotFoundError(BusinessError):
    """对一个从未 start 过的消息链进行操作。"""


class ValidationError(BusinessError):
    """参数或配置校验失败（例如未知的消息角色）。"""


class TransportError(BusinessError):
    """网络层错误：连接失败、超时、非 2xx 状态码等。"""


class RateLimitError(TransportError):
    """后端返回 429。本项目不做重试，由调用方决定是否稍后再试。"""


class DecodeError(BusinessError):
    """字节流不是合法 UTF-8，或响应体不是合法 JSON。"""


class BackendError(BusinessError):
    """响应格式正确，但后端在业务层面报告失败（status != "success"）。"""


class StreamCancelledError(BusinessError):
    """流式读取被 CancelToken 取消。"""
