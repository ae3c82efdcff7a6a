"""聊天后端集成层。

该包下的模块负责：
- 定义后端抽象接口 (base)。
- 维护后端接口地址 (registry)。
- 提供基于 httpx 的具体实现 (http_backend)。
"""

from typing import Optional

from chat_session.config.settings import settings
from chat_session.providers.base import BackendClient
from chat_session.providers.http_backend import HttpBackendClient


def create_backend(name: Optional[str] = None) -> BackendClient:
    """根据名称创建后端实例，目前只有 http 一种实现。"""

    backend_name = (name or "http").lower()
    if backend_name != "http":
        raise KeyError(f"Unknown backend: {name!r}")
    return HttpBackendClient(settings)
