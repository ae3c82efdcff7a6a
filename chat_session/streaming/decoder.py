"""流式响应的字节解码与行切分。

传输层交付的 chunk 边界是任意的：

1. 一个多字节 UTF-8 字符可能被切在两个 chunk 之间，由 ByteAccumulator 负责缓存尾部字节。
2. 一行 ``data: ...`` 可能被切在两个 chunk 之间，由 LineFramer 负责保留未完成的行。

两者都是有状态的，且只服务于一次流式调用，不能在调用之间复用。
"""

import codecs
from typing import List

from chat_session.domain.exceptions import DecodeError
from chat_session.domain.models import StreamIssue

REPLACEMENT_CHAR = "\ufffd"


class ByteAccumulator:
    """增量 UTF-8 解码器。

    decode() 只输出能组成完整字符的部分，不完整的尾部字节留到下一个 chunk；
    永远不合法的字节替换为 U+FFFD 后继续解码，并记录为 INVALID_UTF8 问题，由调用方通过 take_issues() 取走。
    finish() 表示流已结束，此时仍残留的字节说明输入被截断。
    """

    def __init__(self, encoding: str = "utf-8"):
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="strict")
        self._issues: List[StreamIssue] = []

    @property
    def pending(self) -> int:
        """当前缓存、尚未解码的字节数。"""

        buffered, _ = self._decoder.getstate()
        return len(buffered)

    def decode(self, chunk: bytes) -> str:
        parts = []
        data = chunk
        while True:
            try:
                parts.append(self._decoder.decode(data, final=False))
                break
            except UnicodeDecodeError as e:
                # e.object 是缓存字节加本次输入，出错前的部分一定合法
                self._decoder.reset()
                parts.append(e.object[:e.start].decode(self._encoding))
                parts.append(REPLACEMENT_CHAR)
                self._issues.append(StreamIssue(
                    code="INVALID_UTF8",
                    message=f"Invalid {self._encoding} byte sequence in stream: {e.reason}",
                    raw=repr(e.object[e.start:e.end]),
                ))
                data = e.object[e.end:]
        return "".join(parts)

    def take_issues(self) -> List[StreamIssue]:
        """返回并清空 decode() 期间记录的非法字节问题。"""

        issues, self._issues = self._issues, []
        return issues

    def finish(self) -> str:
        pending = self.pending
        try:
            return self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as e:
            raise DecodeError(
                code="TRUNCATED_UTF8",
                message=f"Stream ended with {pending} undecodable trailing byte(s)",
                raw=repr(e.object[e.start:e.end]),
            )
        finally:
            self._decoder.reset()


class LineFramer:
    """把不断增长的文本缓冲区按 ``\\n`` 切分成完整的行。

    最后一段（可能为空）一定是不完整的，作为 remainder 保留到下一次 feed()。
    """

    def __init__(self):
        self._remainder = ""

    @property
    def remainder(self) -> str:
        return self._remainder

    def feed(self, text: str) -> List[str]:
        if not text:
            return []
        lines = (self._remainder + text).split("\n")
        self._remainder = lines.pop()
        return lines

    def finish(self) -> str:
        """返回并清空剩余的不完整行。"""

        rest, self._remainder = self._remainder, ""
        return rest
