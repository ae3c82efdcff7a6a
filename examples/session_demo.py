"""Minimal demonstration of a streamed chat session."""

import os

from chat_session.api.service import SessionService

if __name__ == "__main__":
    service = SessionService()
    print(service.login(os.getenv("CHAT_USERNAME", "user"), os.getenv("CHAT_PASSWORD", "password")))
    print(service.start_chain("default"))
    print(service.add_message("system", "你是一个耐心的老师。", "default"))
    print(service.add_message("user", "你好，我是学生。", "default"))

    result = service.send_and_stream("default", on_fragment=lambda text: print(text, end="", flush=True))
    print()
    if not result.ok:
        print(result)
    print("Quota:", service.check_quota())
