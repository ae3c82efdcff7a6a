"""会话核心模块。

ChatSession 持有登录 token 与按 chain_id 划分的消息链，并编排三类调用：

- login / logout：换取或清除 token。
- start_chain / add_message：在本地构建消息链，不产生网络请求。
- send_and_stream / check_quota：需要 token 的网络调用。

token 与消息链都封装在会话对象内部，读写由锁保护；
每次流式调用使用自己的 StreamState，多个线程可以同时发送不同的消息链。
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from chat_session.config.settings import settings
from chat_session.domain.chain import ChainStore
from chat_session.domain.exceptions import AuthError, ChainNotFoundError, ValidationError
from chat_session.domain.models import ROLES, LoginResult, Message, QuotaResult, StreamResult
from chat_session.infrastructure.logging.logger import logger
from chat_session.infrastructure.storage.memory_store import InMemoryChainStore
from chat_session.providers.base import BackendClient
from chat_session.streaming.assembler import CancelToken


class ChatSession:
    def __init__(
        self,
        backend: BackendClient,
        store: Optional[ChainStore] = None,
        record_assistant_reply: Optional[bool] = None,
    ):
        self._backend = backend
        self._store = store if store is not None else InMemoryChainStore()
        self._token: Optional[str] = None
        self._token_lock = threading.Lock()
        if record_assistant_reply is None:
            record_assistant_reply = settings.record_assistant_reply
        self._record_reply = record_assistant_reply

    # ---- 认证 ----

    @property
    def is_logged_in(self) -> bool:
        with self._token_lock:
            return self._token is not None

    def login(self, username: str, password: str) -> LoginResult:
        """登录成功时保存 token；失败时抛出异常，原有 token 保持不变。"""

        log_ctx = {"backend": self._backend.name, "username": username}
        try:
            result = self._backend.login(username, password)
        except AuthError as e:
            self._log(logging.WARNING, "Login rejected", log_ctx, code=e.code)
            raise
        with self._token_lock:
            self._token = result.token
        self._log(logging.INFO, "Login successful", log_ctx)
        return result

    def logout(self) -> None:
        with self._token_lock:
            self._token = None
        self._log(logging.INFO, "Logged out", {"backend": self._backend.name})

    def _require_token(self) -> str:
        with self._token_lock:
            token = self._token
        if token is None:
            raise AuthError(code="NOT_LOGGED_IN", message="Not logged in", http_status=401)
        return token

    # ---- 消息链 ----

    def start_chain(self, chain_id: str) -> None:
        self._store.start(chain_id)
        self._log(logging.INFO, "Started chain", {"chain_id": chain_id})

    def add_message(self, role: str, content: str, chain_id: str) -> Message:
        if role not in ROLES:
            raise ValidationError(
                code="INVALID_ROLE",
                message=f"Unknown role {role!r}, expected one of {', '.join(ROLES)}",
                role=role,
            )
        message = Message(role=role, content=content)
        self._store.append(chain_id, message)
        return message

    def get_chain(self, chain_id: str) -> Tuple[Message, ...]:
        return self._store.messages(chain_id)

    def list_chains(self) -> List[str]:
        return self._store.chain_ids()

    def drop_chain(self, chain_id: str) -> None:
        self._store.discard(chain_id)

    # ---- 网络调用 ----

    def send_and_stream(
        self,
        chain_id: str,
        cancel: Optional[CancelToken] = None,
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> StreamResult:
        """发送整条消息链并返回组装好的回答。

        未登录或消息链不存在时直接抛出异常，不会发起任何网络请求。
        """

        token = self._require_token()
        if not self._store.exists(chain_id):
            raise ChainNotFoundError(
                code="CHAIN_NOT_FOUND",
                message=f"Chain {chain_id} not found",
                http_status=404,
                chain_id=chain_id,
            )
        messages = self._store.messages(chain_id)
        log_ctx = {"backend": self._backend.name, "chain_id": chain_id}
        self._log(logging.INFO, "Sending chain", log_ctx, message_count=len(messages))

        started = time.perf_counter()
        result = self._backend.stream_chain(
            token,
            messages,
            conversation_id=chain_id,
            cancel=cancel,
            on_fragment=on_fragment,
        )
        self._log(
            logging.INFO,
            "Stream finished",
            log_ctx,
            terminated=result.terminated,
            chunks=result.chunk_count,
            lines=result.line_count,
            fragments=result.fragment_count,
            issues=len(result.issues),
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
        if self._record_reply and self._store.exists(chain_id):
            self._store.append(chain_id, Message(role="assistant", content=result.text))
        return result

    def check_quota(self) -> QuotaResult:
        token = self._require_token()
        return self._backend.fetch_quota(token)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
