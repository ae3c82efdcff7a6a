"""Chat Session 顶层包。

该包提供一个面向远端聊天后端的客户端会话管理器，
包括配置加载、领域模型、后端适配、消息链管理，
以及把分块到达的 SSE 字节流还原为完整回答的流式解码器。
"""

from chat_session.session import ChatSession
from chat_session.streaming import CancelToken, StreamAssembler

__all__ = ["CancelToken", "ChatSession", "StreamAssembler"]
