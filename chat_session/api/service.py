"""对外 API 服务模块。

为上层应用（脚本、积木式前端等）提供"永不抛出业务异常"的操作接口：
每个操作都返回 OperationResult，成功时携带结果值，失败时携带异常与可读的错误描述。
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from chat_session.domain.exceptions import AuthError, BackendError, BusinessError, ChainNotFoundError
from chat_session.infrastructure.logging.logger import logger
from chat_session.providers import create_backend
from chat_session.session import ChatSession
from chat_session.streaming.assembler import CancelToken


@dataclass
class OperationResult:
    """一次对外操作的结果。

    - ok: 是否成功。
    - value: 成功时的结果（StreamResult、QuotaResult 等），失败时为 None。
    - message: 面向用户的描述；流式调用成功时就是最终回答文本。
    - error: 失败时的业务异常。
    """

    ok: bool
    message: str
    value: Any = None
    error: Optional[BusinessError] = None

    def __str__(self) -> str:
        return self.message


class SessionService:
    def __init__(self, session: Optional[ChatSession] = None):
        self._session = session or ChatSession(backend=create_backend())

    @property
    def session(self) -> ChatSession:
        return self._session

    def login(self, username: str, password: str) -> OperationResult:
        try:
            result = self._session.login(username, password)
        except AuthError as e:
            return self._failure("login", e, f"Login failed: {e.message}")
        except BusinessError as e:
            return self._failure("login", e)
        return OperationResult(ok=True, message="Login successful", value=result)

    def logout(self) -> OperationResult:
        self._session.logout()
        return OperationResult(ok=True, message="Logged out")

    def start_chain(self, chain_id: str) -> OperationResult:
        self._session.start_chain(chain_id)
        return OperationResult(ok=True, message=f"Started new chain: {chain_id}", value=chain_id)

    def add_message(self, role: str, content: str, chain_id: str) -> OperationResult:
        try:
            message = self._session.add_message(role, content, chain_id)
        except ChainNotFoundError as e:
            return self._failure(
                "add_message",
                e,
                f"Error: Chain {chain_id} not found. Start the chain first.",
                chain_id=chain_id,
            )
        except BusinessError as e:
            return self._failure("add_message", e, chain_id=chain_id)
        return OperationResult(ok=True, message=f"Added {role} message to chain {chain_id}", value=message)

    def send_and_stream(
        self,
        chain_id: str,
        cancel: Optional[CancelToken] = None,
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> OperationResult:
        try:
            result = self._session.send_and_stream(chain_id, cancel=cancel, on_fragment=on_fragment)
        except AuthError as e:
            return self._failure("send_and_stream", e, f"Error: {e.message}", chain_id=chain_id)
        except ChainNotFoundError as e:
            return self._failure("send_and_stream", e, f"Error: Chain {chain_id} not found", chain_id=chain_id)
        except BusinessError as e:
            return self._failure("send_and_stream", e, chain_id=chain_id)
        return OperationResult(ok=True, message=result.text, value=result)

    def check_quota(self) -> OperationResult:
        try:
            result = self._session.check_quota()
        except BackendError as e:
            return self._failure("check_quota", e, e.message or "Error fetching quota")
        except BusinessError as e:
            return self._failure("check_quota", e)
        return OperationResult(ok=True, message=str(result.quota), value=result)

    @staticmethod
    def _failure(operation: str, error: BusinessError, message: Optional[str] = None, **context: Any) -> OperationResult:
        logger.error(f"{operation} failed: {error.message}", extra={"extra": {
            "operation": operation,
            "code": error.code,
            "error_type": type(error).__name__,
            **context,
        }})
        return OperationResult(
            ok=False,
            message=message or f"Error: {error.message}",
            error=error,
        )
