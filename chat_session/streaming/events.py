"""SSE 行解析。

每一行完整文本被解析为以下四种结果之一：

- skip: 不是 ``data: `` 行（注释、keep-alive、event 字段等），或是不带文本增量的 data 记录。
- terminal: ``data: [DONE]``，流在逻辑上已经结束。
- payload: ``choices[0].delta.content`` 中的文本增量。
- malformed: data 负载不是合法 JSON。由于 LineFramer 只交付完整的行，
  这里的解析失败意味着负载本身有问题，交给上层记录，而不是抛出。
"""

import json
from dataclasses import dataclass
from typing import Any, Literal, Optional


DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

LineKind = Literal["skip", "terminal", "payload", "malformed"]


@dataclass(frozen=True)
class ParsedLine:
    kind: LineKind
    fragment: Optional[str] = None
    raw: str = ""
    error: Optional[str] = None


class EventParser:
    """无状态的行解析器，可以在多个流之间共享。"""

    def parse_line(self, line: str) -> ParsedLine:
        if not line.startswith(DATA_PREFIX):
            return ParsedLine(kind="skip", raw=line)

        content = line[len(DATA_PREFIX):].strip()
        if content == DONE_SENTINEL:
            return ParsedLine(kind="terminal", raw=line)

        try:
            record = json.loads(content)
        except json.JSONDecodeError as e:
            return ParsedLine(kind="malformed", raw=line, error=str(e))

        fragment = self._extract_delta_content(record)
        if fragment is None:
            return ParsedLine(kind="skip", raw=line)
        return ParsedLine(kind="payload", fragment=fragment, raw=line)

    @staticmethod
    def _extract_delta_content(record: Any) -> Optional[str]:
        """读取 choices[0].delta.content，任何一层缺失都返回 None。"""

        if not isinstance(record, dict):
            return None
        choices = record.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        delta = first.get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        return content if isinstance(content, str) else None
