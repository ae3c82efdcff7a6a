"""流式响应解码。

- decoder: ByteAccumulator（跨 chunk 的 UTF-8 解码）与 LineFramer（跨 chunk 的行切分）。
- events: EventParser，把一行解析为 skip/terminal/payload/malformed。
- assembler: StreamAssembler，把上述组件串起来并拼接最终回答。
"""

from chat_session.streaming.assembler import CancelToken, StreamAssembler, StreamState
from chat_session.streaming.decoder import ByteAccumulator, LineFramer
from chat_session.streaming.events import EventParser, ParsedLine

__all__ = [
    "ByteAccumulator",
    "CancelToken",
    "EventParser",
    "LineFramer",
    "ParsedLine",
    "StreamAssembler",
    "StreamState",
]
