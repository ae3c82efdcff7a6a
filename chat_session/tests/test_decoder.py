import pytest

from chat_session.domain.exceptions import DecodeError
from chat_session.streaming.decoder import ByteAccumulator, LineFramer


def test_byte_accumulator_holds_split_multibyte_char():
    data = "你好".encode("utf-8")
    acc = ByteAccumulator()
    assert acc.decode(data[:2]) == ""
    assert acc.pending == 2
    assert acc.decode(data[2:4]) == "你"
    assert acc.pending == 1
    assert acc.decode(data[4:]) == "好"
    assert acc.pending == 0
    assert acc.finish() == ""


def test_byte_accumulator_any_split_matches_full_decode():
    text = "data: héllo 你好 🙂\nnext ünïcode line\n"
    data = text.encode("utf-8")
    for i in range(len(data) + 1):
        for j in range(i, len(data) + 1):
            acc = ByteAccumulator()
            out = acc.decode(data[:i]) + acc.decode(data[i:j]) + acc.decode(data[j:]) + acc.finish()
            assert out == text


def test_byte_accumulator_one_byte_at_a_time():
    text = "emoji 🙂 and 中文"
    acc = ByteAccumulator()
    out = "".join(acc.decode(bytes([b])) for b in text.encode("utf-8"))
    assert out + acc.finish() == text


def test_byte_accumulator_truncated_tail_raises_on_finish():
    acc = ByteAccumulator()
    assert acc.decode("ok".encode("utf-8") + "你".encode("utf-8")[:2]) == "ok"
    with pytest.raises(DecodeError) as exc:
        acc.finish()
    assert exc.value.code == "TRUNCATED_UTF8"


def test_byte_accumulator_replaces_invalid_bytes():
    acc = ByteAccumulator()
    assert acc.decode(b"abc\xff\xfe") + acc.decode("中".encode("utf-8")) == "abc\ufffd\ufffd中"
    issues = acc.take_issues()
    assert [i.code for i in issues] == ["INVALID_UTF8", "INVALID_UTF8"]
    assert acc.take_issues() == []
    assert acc.finish() == ""


def test_byte_accumulator_invalid_byte_after_split_character():
    acc = ByteAccumulator()
    head = "你".encode("utf-8")
    assert acc.decode(head[:2]) == ""
    assert acc.decode(head[2:] + b"\x80ok") == "你\ufffdok"
    assert len(acc.take_issues()) == 1


def test_line_framer_keeps_remainder():
    framer = LineFramer()
    assert framer.feed("data: a\nda") == ["data: a"]
    assert framer.remainder == "da"
    assert framer.feed("ta: b\n") == ["data: b"]
    assert framer.remainder == ""
    assert framer.feed("tail") == []
    assert framer.finish() == "tail"
    assert framer.remainder == ""


def test_line_framer_empty_lines_are_emitted():
    framer = LineFramer()
    assert framer.feed("a\n\nb\n") == ["a", "", "b"]


def test_line_framer_any_split_matches_full_split():
    text = "data: one\n\n: keep-alive\ndata: two\r\ndata: [DONE]\ntrailing"
    expected = text.split("\n")
    for i in range(len(text) + 1):
        framer = LineFramer()
        lines = framer.feed(text[:i]) + framer.feed(text[i:])
        lines.append(framer.finish())
        assert lines == expected
        assert "\n".join(lines) == text
