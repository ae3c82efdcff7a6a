"""后端客户端抽象接口。

会话层（ChatSession）不直接依赖 HTTP 库，而是依赖此协议：

- 每种后端实现一个 BackendClient（如 HttpBackendClient）。
- 负责：把登录/消息链/额度请求转成具体 HTTP 调用，并把响应解析为统一模型。

这样测试时可以用假的后端替换真实网络调用。
"""

from typing import Callable, Optional, Protocol, Sequence

from chat_session.domain.models import LoginResult, Message, QuotaResult, StreamResult
from chat_session.streaming.assembler import CancelToken


class BackendClient(Protocol):
    """聊天后端客户端协议。

    实现者需要提供：
    - name: 后端名称，用于日志。
    - login: 用户名密码换取 token。
    - stream_chain: 发送整条消息链并把流式回答组装为 StreamResult。
    - fetch_quota: 查询剩余额度。
    """

    name: str

    def login(self, username: str, password: str) -> LoginResult:
        ...

    def stream_chain(
        self,
        token: str,
        messages: Sequence[Message],
        conversation_id: str,
        cancel: Optional[CancelToken] = None,
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> StreamResult:
        ...

    def fetch_quota(self, token: str) -> QuotaResult:
        ...
