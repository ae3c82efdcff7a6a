"""流式回答的组装器。

StreamAssembler 按 chunk 到达顺序依次驱动 ByteAccumulator -> LineFramer -> EventParser，
把每个文本增量按顺序拼接成最终回答。

停止条件（先到者为准）：
- 传输层报告流结束；
- 观察到 ``data: [DONE]``，此后同一批次中的行不再追加，也不再读取新的 chunk。

每次 run() 都会创建全新的 StreamState，不同调用之间没有任何缓冲区残留，
因此同一个 StreamAssembler 可以被多个线程同时使用。
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional

from chat_session.config.settings import settings
from chat_session.domain.exceptions import DecodeError, StreamCancelledError
from chat_session.domain.models import StreamIssue, StreamResult
from chat_session.infrastructure.logging.logger import log_event
from chat_session.streaming.decoder import ByteAccumulator, LineFramer
from chat_session.streaming.events import EventParser


class CancelToken:
    """线程安全的取消标记，由调用方在任意线程触发。"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class StreamState:
    """单次流式调用的全部可变状态，仅归属于一次调用。"""

    accumulator: ByteAccumulator = field(default_factory=ByteAccumulator)
    framer: LineFramer = field(default_factory=LineFramer)
    parts: List[str] = field(default_factory=list)
    issues: List[StreamIssue] = field(default_factory=list)
    done: bool = False
    terminated: bool = False
    chunk_count: int = 0
    line_count: int = 0

    def result(self) -> StreamResult:
        return StreamResult(
            text="".join(self.parts),
            terminated=self.terminated,
            issues=list(self.issues),
            chunk_count=self.chunk_count,
            line_count=self.line_count,
            fragment_count=len(self.parts),
        )


class StreamAssembler:
    def __init__(self, parser: Optional[EventParser] = None):
        self._parser = parser or EventParser()

    def run(
        self,
        chunks: Iterable[bytes],
        cancel: Optional[CancelToken] = None,
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> StreamResult:
        """消费整个字节流并返回最终结果。

        chunks 抛出的异常（网络中断等）原样向上传播，由传输层转换为 TransportError；
        已经累积的部分文本随异常一起丢弃。
        """

        state = StreamState()
        for fragment in self.iter_fragments(chunks, state, cancel):
            if on_fragment is not None:
                on_fragment(fragment)
        return state.result()

    def iter_fragments(
        self,
        chunks: Iterable[bytes],
        state: StreamState,
        cancel: Optional[CancelToken] = None,
    ) -> Iterator[str]:
        """逐个产出文本增量；生成器耗尽时 state.done 为 True。"""

        iterator = iter(chunks)
        while True:
            self._check_cancel(cancel, state)
            try:
                chunk = next(iterator)
            except StopIteration:
                break
            # 阻塞读取期间可能已被取消
            self._check_cancel(cancel, state)
            state.chunk_count += 1

            text = state.accumulator.decode(chunk)
            for issue in state.accumulator.take_issues():
                self._report(state, issue)
            for line in state.framer.feed(text):
                state.line_count += 1
                parsed = self._parser.parse_line(line)
                if parsed.kind == "terminal":
                    state.terminated = True
                    break
                if parsed.kind == "payload":
                    state.parts.append(parsed.fragment)
                    yield parsed.fragment
                elif parsed.kind == "malformed":
                    self._report(state, StreamIssue(
                        code="MALFORMED_PAYLOAD",
                        message=parsed.error or "payload is not valid JSON",
                        raw=line,
                    ))
            if state.terminated:
                break

        self._finish(state)

    def _finish(self, state: StreamState) -> None:
        if not state.terminated:
            try:
                state.accumulator.finish()
            except DecodeError as e:
                self._report(state, StreamIssue(code=e.code, message=e.message, raw=e.extra.get("raw", "")))
            rest = state.framer.finish()
            if rest.strip():
                # 传输层经常省略最后的换行，这里只记录不报错
                state.issues.append(StreamIssue(
                    code="UNTERMINATED_LINE",
                    message="Stream ended without a trailing newline; last line discarded",
                    raw=rest,
                ))
                log_event(logging.DEBUG, "Discarded unterminated trailing line", length=len(rest))
        state.done = True

    @staticmethod
    def _check_cancel(cancel: Optional[CancelToken], state: StreamState) -> None:
        if cancel is not None and cancel.cancelled:
            raise StreamCancelledError(
                code="STREAM_CANCELLED",
                message="Stream cancelled",
                http_status=499,
                chunks_read=state.chunk_count,
            )

    @staticmethod
    def _report(state: StreamState, issue: StreamIssue) -> None:
        state.issues.append(issue)
        fields = {"code": issue.code, "detail": issue.message}
        if not settings.log_redact_content:
            fields["raw"] = issue.raw[:200]
        log_event(logging.WARNING, "Stream issue", **fields)
