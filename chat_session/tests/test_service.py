from chat_session.api.service import SessionService
from chat_session.domain.exceptions import (
    AuthError,
    BackendError,
    ChainNotFoundError,
    StreamCancelledError,
    TransportError,
)
from chat_session.domain.models import LoginResult, QuotaResult
from chat_session.session import ChatSession
from chat_session.streaming.assembler import CancelToken, StreamAssembler


class FakeBackend:
    name = "fake"

    def __init__(self):
        self.stream_error = None
        self.quota_error = None
        self.sent = 0

    def login(self, username, password):
        if password != "secret":
            raise AuthError(code="LOGIN_FAILED", message="invalid password", http_status=401)
        return LoginResult(token="t")

    def stream_chain(self, token, messages, conversation_id, cancel=None, on_fragment=None):
        self.sent += 1
        if self.stream_error:
            raise self.stream_error
        chunks = [b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n', b'data: {"choices":[{"delta":{"content":"lo"}}]}\n']
        return StreamAssembler().run(chunks, cancel=cancel, on_fragment=on_fragment)

    def fetch_quota(self, token):
        if self.quota_error:
            raise self.quota_error
        return QuotaResult(quota=99)


def make_service():
    backend = FakeBackend()
    return SessionService(ChatSession(backend=backend, record_assistant_reply=False)), backend


def test_login_messages():
    service, _ = make_service()
    failed = service.login("user", "wrong")
    assert not failed.ok
    assert failed.message == "Login failed: invalid password"
    assert isinstance(failed.error, AuthError)

    ok = service.login("user", "secret")
    assert ok.ok
    assert ok.message == "Login successful"


def test_chain_messages():
    service, _ = make_service()
    assert service.start_chain("default").message == "Started new chain: default"
    assert service.add_message("user", "hi", "default").message == "Added user message to chain default"
    missing = service.add_message("user", "hi", "nope")
    assert not missing.ok
    assert missing.message == "Error: Chain nope not found. Start the chain first."
    assert isinstance(missing.error, ChainNotFoundError)


def test_invalid_role_is_reported():
    service, _ = make_service()
    service.start_chain("c")
    result = service.add_message("robot", "hi", "c")
    assert not result.ok
    assert result.error.code == "INVALID_ROLE"


def test_send_and_stream_not_logged_in():
    service, backend = make_service()
    service.start_chain("c")
    result = service.send_and_stream("c")
    assert not result.ok
    assert result.message == "Error: Not logged in"
    assert backend.sent == 0


def test_send_and_stream_unknown_chain():
    service, _ = make_service()
    service.login("user", "secret")
    result = service.send_and_stream("ghost")
    assert result.message == "Error: Chain ghost not found"
    assert isinstance(result.error, ChainNotFoundError)


def test_send_and_stream_success_returns_text():
    service, _ = make_service()
    service.login("user", "secret")
    service.start_chain("c")
    service.add_message("user", "hi", "c")
    fragments = []
    result = service.send_and_stream("c", on_fragment=fragments.append)
    assert result.ok
    assert str(result) == "Hello"
    assert result.value.text == "Hello"
    assert fragments == ["Hel", "lo"]


def test_send_and_stream_transport_failure_discards_partial_text():
    service, backend = make_service()
    service.login("user", "secret")
    service.start_chain("c")
    backend.stream_error = TransportError(
        code="HTTP_ERROR", message="Failed to send message chain (HTTP 500)", http_status=500
    )
    result = service.send_and_stream("c")
    assert not result.ok
    assert result.value is None
    assert result.message == "Error: Failed to send message chain (HTTP 500)"


def test_send_and_stream_cancelled():
    service, _ = make_service()
    service.login("user", "secret")
    service.start_chain("c")
    token = CancelToken()
    token.cancel()
    result = service.send_and_stream("c", cancel=token)
    assert not result.ok
    assert isinstance(result.error, StreamCancelledError)


def test_check_quota():
    service, backend = make_service()
    assert service.check_quota().message == "Error: Not logged in"
    service.login("user", "secret")
    result = service.check_quota()
    assert result.ok
    assert result.message == "99"
    assert result.value.quota == 99

    backend.quota_error = BackendError(code="QUOTA_ERROR", message="Error fetching quota")
    assert service.check_quota().message == "Error fetching quota"

    backend.quota_error = BackendError(code="QUOTA_ERROR", message="quota service down")
    failed = service.check_quota()
    assert not failed.ok
    assert failed.message == "quota service down"

    backend.quota_error = TransportError(code="NETWORK_ERROR", message="connection refused", http_status=503)
    assert service.check_quota().message == "Error: connection refused"


def test_logout():
    service, _ = make_service()
    service.login("user", "secret")
    assert service.logout().ok
    assert service.check_quota().message == "Error: Not logged in"
