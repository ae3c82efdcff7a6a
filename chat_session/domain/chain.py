from typing import List, Protocol, Tuple

from .models import Message


class ChainStore(Protocol):
    """按 chain_id 管理消息链的存储协议。"""

    def start(self, chain_id: str) -> None:
        ...

    def append(self, chain_id: str, message: Message) -> None:
        ...

    def messages(self, chain_id: str) -> Tuple[Message, ...]:
        ...

    def exists(self, chain_id: str) -> bool:
        ...

    def chain_ids(self) -> List[str]:
        ...

    def discard(self, chain_id: str) -> None:
        ...
