"""HTTP 后端适配器。

本模块负责：

1. 登录：POST {base}/login，成功时返回 token。
2. 发送消息链：POST {base}/send，以流的方式读取响应体，交给 StreamAssembler 组装。
3. 额度查询：GET {base}/quota，原样返回后端给出的额度值。
4. 把网络/HTTP/JSON 层面的问题统一转换为 domain.exceptions 中的业务异常。

所有请求体与响应体都是 UTF-8 JSON；流式响应的字符集处理由 streaming 包负责。
"""

from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import httpx

from chat_session.config.settings import settings
from chat_session.domain.exceptions import (
    AuthError,
    BackendError,
    DecodeError,
    RateLimitError,
    TransportError,
)
from chat_session.domain.models import LoginResult, Message, QuotaResult, StreamResult
from chat_session.providers.registry import endpoints_from_settings
from chat_session.streaming.assembler import CancelToken, StreamAssembler


JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class HttpBackendClient:
    """基于 httpx 的聊天后端客户端。

    - name: 后端名称（供日志/调试使用）。
    - 每次调用都新建 httpx.Client，并在 with 块结束时释放连接。
    """

    name = "http"

    def __init__(self, cfg=settings, assembler: Optional[StreamAssembler] = None):
        self._settings = cfg
        self._endpoints = endpoints_from_settings(cfg)
        self._assembler = assembler or StreamAssembler()

    @property
    def endpoints(self):
        return self._endpoints

    # ---- 登录 ----

    def login(self, username: str, password: str) -> LoginResult:
        status_code, data = self._post_json(
            self._endpoints.login_url,
            {"username": username, "password": password},
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )
        if data.get("status") == "success" and status_code < 400:
            token = data.get("token")
            if not isinstance(token, str) or not token:
                raise BackendError(code="MISSING_TOKEN", message="Login response did not contain a token")
            return LoginResult(token=token, message=data.get("message"))
        if status_code in (401, 403) or "status" in data:
            raise AuthError(
                code="LOGIN_FAILED",
                message=str(data.get("message") or "Invalid credentials"),
                http_status=401,
            )
        self._raise_for_status(status_code)
        raise BackendError(code="UNEXPECTED_RESPONSE", message="Unexpected login response")

    # ---- 流式发送 ----

    def stream_chain(
        self,
        token: str,
        messages: Sequence[Message],
        conversation_id: str,
        cancel: Optional[CancelToken] = None,
        on_fragment: Optional[Callable[[str], None]] = None,
    ) -> StreamResult:
        """发送消息链并阻塞读取流式回答。

        响应体在 with 块内读取：无论正常结束、收到 [DONE]、被取消还是出错，连接都会被释放。
        """

        payload = {
            "messages": [m.to_payload() for m in messages],
            "conversation_id": conversation_id,
        }
        timeout = httpx.Timeout(self._settings.http_timeout, read=self._settings.stream_read_timeout)
        try:
            with httpx.Client(timeout=timeout, trust_env=False) as client:
                with client.stream(
                    "POST",
                    self._endpoints.send_url,
                    json=payload,
                    headers=self._auth_headers(token, json_body=True),
                ) as resp:
                    if resp.status_code in (401, 403):
                        raise AuthError(code="UNAUTHORIZED", message="Token rejected by backend", http_status=401)
                    if resp.status_code == 429:
                        raise RateLimitError(code="RATE_LIMIT", message="Backend rate limit", http_status=429)
                    if resp.status_code >= 400:
                        raise TransportError(
                            code="HTTP_ERROR",
                            message=f"Failed to send message chain (HTTP {resp.status_code})",
                            http_status=resp.status_code,
                        )
                    return self._assembler.run(resp.iter_bytes(), cancel=cancel, on_fragment=on_fragment)
        except (httpx.RequestError, httpx.StreamError) as e:
            # 连接失败、读取超时、读取中途断开
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, http_status=503)

    # ---- 额度 ----

    def fetch_quota(self, token: str) -> QuotaResult:
        status_code, data = self._get_json(self._endpoints.quota_url, headers=self._auth_headers(token))
        if status_code in (401, 403):
            raise AuthError(
                code="UNAUTHORIZED",
                message=str(data.get("message") or "Token rejected by backend"),
                http_status=401,
            )
        if data.get("status") == "success":
            if "quota" not in data:
                raise BackendError(code="MISSING_QUOTA", message="Quota response did not contain a quota")
            return QuotaResult(quota=data["quota"], raw=data)
        if "status" not in data:
            self._raise_for_status(status_code)
        raise BackendError(code="QUOTA_ERROR", message=str(data.get("message") or "Error fetching quota"))

    # ---- 辅助方法 ----

    @staticmethod
    def _auth_headers(token: str, json_body: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {token}"}
        if json_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        return headers

    def _post_json(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> Tuple[int, Dict[str, Any]]:
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(url, json=body, headers=headers)
        except httpx.RequestError as e:
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, http_status=503)
        return resp.status_code, self._parse_json(resp)

    def _get_json(self, url: str, headers: Dict[str, str]) -> Tuple[int, Dict[str, Any]]:
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.get(url, headers=headers)
        except httpx.RequestError as e:
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, http_status=503)
        return resp.status_code, self._parse_json(resp)

    def _parse_json(self, resp) -> Dict[str, Any]:
        """解析 JSON 响应体；限流优先于解析，非 JSON 的错误响应按 HTTP 状态处理。"""

        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Backend rate limit", http_status=429)
        try:
            data = resp.json()
        except ValueError:
            self._raise_for_status(resp.status_code)
            raise DecodeError(code="INVALID_JSON", message="Response body is not valid JSON")
        if not isinstance(data, dict):
            raise DecodeError(code="INVALID_JSON", message="Response body is not a JSON object")
        return data

    @staticmethod
    def _raise_for_status(status_code: int) -> None:
        if status_code >= 400:
            raise TransportError(
                code="HTTP_ERROR",
                message=f"Request failed (HTTP {status_code})",
                http_status=status_code,
            )
