import threading
from typing import Dict, List, Tuple

from chat_session.domain.chain import ChainStore
from chat_session.domain.exceptions import ChainNotFoundError
from chat_session.domain.models import Message


class InMemoryChainStore(ChainStore):
    """进程内的消息链存储，不做任何持久化。

    所有读写都在同一把锁内完成；读取返回 tuple 快照，
    调用方拿到的消息序列不会被后续的 append 改变。
    """

    def __init__(self):
        self._chains: Dict[str, List[Message]] = {}
        self._lock = threading.Lock()

    def start(self, chain_id: str) -> None:
        # 重复 start 会丢弃之前的消息
        with self._lock:
            self._chains[chain_id] = []

    def append(self, chain_id: str, message: Message) -> None:
        with self._lock:
            chain = self._chains.get(chain_id)
            if chain is None:
                raise ChainNotFoundError(
                    code="CHAIN_NOT_FOUND",
                    message=f"Chain {chain_id} not found. Start the chain first.",
                    http_status=404,
                    chain_id=chain_id,
                )
            chain.append(message)

    def messages(self, chain_id: str) -> Tuple[Message, ...]:
        with self._lock:
            chain = self._chains.get(chain_id)
            if chain is None:
                raise ChainNotFoundError(
                    code="CHAIN_NOT_FOUND",
                    message=f"Chain {chain_id} not found",
                    http_status=404,
                    chain_id=chain_id,
                )
            return tuple(chain)

    def exists(self, chain_id: str) -> bool:
        with self._lock:
            return chain_id in self._chains

    def chain_ids(self) -> List[str]:
        with self._lock:
            return list(self._chains)

    def discard(self, chain_id: str) -> None:
        """删除一个消息链；不存在时抛出 ChainNotFoundError。"""
        with self._lock:
            if chain_id not in self._chains:
                raise ChainNotFoundError(
                    code="CHAIN_NOT_FOUND",
                    message=f"Chain {chain_id} not found",
                    http_status=404,
                    chain_id=chain_id,
                )
            del self._chains[chain_id]
