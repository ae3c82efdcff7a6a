import pytest

from chat_session.domain.exceptions import ChainNotFoundError
from chat_session.domain.models import Message
from chat_session.infrastructure.storage.memory_store import InMemoryChainStore


def test_memory_store_start_and_append():
    store = InMemoryChainStore()
    store.start("c1")
    store.append("c1", Message(role="user", content="a"))
    store.append("c1", Message(role="assistant", content="b"))
    assert [m.content for m in store.messages("c1")] == ["a", "b"]
    assert store.exists("c1")
    assert store.chain_ids() == ["c1"]


def test_memory_store_unknown_chain():
    store = InMemoryChainStore()
    with pytest.raises(ChainNotFoundError):
        store.append("nope", Message(role="user", content="a"))
    with pytest.raises(ChainNotFoundError):
        store.messages("nope")
    with pytest.raises(ChainNotFoundError):
        store.discard("nope")


def test_memory_store_chains_are_independent():
    store = InMemoryChainStore()
    store.start("a")
    store.start("b")
    store.append("a", Message(role="user", content="only in a"))
    assert store.messages("b") == ()
    store.discard("a")
    assert not store.exists("a")
    assert store.exists("b")
