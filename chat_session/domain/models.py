"""会话层与流式层共享的数据模型。

- Message: 消息链中的一条消息（user/system/assistant），追加后不可变。
- LoginResult / QuotaResult: 登录与额度查询的统一结果。
- StreamIssue / StreamResult: 一次流式调用的最终结果以及过程中发现的可恢复异常。

Provider 适配层负责把后端 JSON 转换为这些模型，会话层只依赖这里的定义。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


# 消息角色（与后端 messages[].role 字段对应）
Role = Literal["system", "user", "assistant"]

ROLES = ("user", "system", "assistant")


@dataclass(frozen=True)
class Message:
    """消息链中的一条消息。

    - role: 消息角色，只能是 user/system/assistant。
    - content: 任意 UTF-8 文本。
    """

    role: Role
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LoginResult:
    """登录成功后的结果。token 只保存在会话中，这里仅回传后端提示信息。"""

    token: str
    message: Optional[str] = None


@dataclass
class QuotaResult:
    """额度查询结果。

    - quota: 后端返回的原始值（数字或字符串），不做任何转换。
    - raw: 原始响应 JSON，用于调试。
    """

    quota: Any
    raw: Optional[dict] = None


@dataclass(frozen=True)
class StreamIssue:
    """流式过程中发现、但不中断本次调用的异常情况。

    code 取值：
        - "MALFORMED_PAYLOAD": data 行的负载不是合法 JSON。
        - "INVALID_UTF8": 流中出现永远不合法的字节，已替换为 U+FFFD。
        - "TRUNCATED_UTF8": 流结束时仍有无法组成完整字符的尾部字节。
        - "UNTERMINATED_LINE": 流结束时最后一行没有换行符，被丢弃。
    """

    code: str
    message: str
    raw: str = ""


@dataclass
class StreamResult:
    """一次 send-and-stream 调用的最终结果。"""

    text: str
    terminated: bool = False  # 是否收到了 [DONE]
    issues: List[StreamIssue] = field(default_factory=list)
    chunk_count: int = 0
    line_count: int = 0
    fragment_count: int = 0
