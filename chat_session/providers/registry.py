"""后端接口地址配置。

把 base_url 与各接口路径集中在一起，上层只关心 login/send/quota 三个逻辑接口，
具体 URL 由这里根据配置拼接，便于切换到隧道地址或自建后端。"""

from dataclasses import dataclass


DEFAULT_BASE_URL = "https://port9593.octopus-tech.com"


@dataclass(frozen=True)
class BackendEndpoints:
    """某个聊天后端的全部接口地址。"""

    base_url: str
    login_path: str = "/login"
    send_path: str = "/send"
    quota_path: str = "/quota"

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{self.login_path}"

    @property
    def send_url(self) -> str:
        return f"{self.base_url}{self.send_path}"

    @property
    def quota_url(self) -> str:
        return f"{self.base_url}{self.quota_path}"


def endpoints_from_settings(cfg) -> BackendEndpoints:
    """根据 Settings（或任何带同名属性的对象）构造接口地址，缺失字段使用默认值。"""

    base = getattr(cfg, "chat_api_base_url", None) or DEFAULT_BASE_URL
    return BackendEndpoints(
        base_url=base.rstrip("/"),
        login_path=getattr(cfg, "login_path", None) or "/login",
        send_path=getattr(cfg, "send_path", None) or "/send",
        quota_path=getattr(cfg, "quota_path", None) or "/quota",
    )
