"""
Module: tests/unit/test_client.py

What:
    Verify the POP3 client verbs: greeting handling, authentication, reply
    parsing for STAT/LIST/UIDL, retrieval, and the session lifecycle including
    the liveness probe.

Why:
    The drain trusts the client to turn replies into typed values and to keep
    server rejections, malformed replies and hang-ups apart.

How:
    Canned replies via :class:`fakes.ScriptedStream` pin exact wire bytes;
    the stateful :class:`fakes.FakeMailbox` covers realistic sessions.
"""

import pytest

from fakes import FakeMailbox, FakePop3Session, FakeStream, ScriptedStream

from mailpop.pop3.client import (
    MessageInfo,
    Pop3Client,
    parse_number_and_size,
    parse_number_and_uid,
)
from mailpop.pop3.errors import (
    CANNOT_DIAL_HOST,
    ConnectionClosedError,
    DialError,
    EndOfStream,
    ParseError,
    ResponseError,
    TransportError,
)


GREETING = b"+OK POP3 ready <1896.697170952@dbc.mag.net>\r\n"


def _scripted(*replies: bytes) -> tuple[Pop3Client, ScriptedStream]:
    stream = ScriptedStream(GREETING + b"".join(replies))
    return Pop3Client(stream), stream


def test_greeting_text_is_kept():
    client, _ = _scripted()

    assert client.welcome == "POP3 ready <1896.697170952@dbc.mag.net>"


def test_missing_greeting_is_dial_error():
    stream = ScriptedStream(b"")

    with pytest.raises(DialError) as excinfo:
        Pop3Client(stream)
    assert str(excinfo.value) == CANNOT_DIAL_HOST
    assert stream.closed


def test_negative_greeting_is_response_error():
    stream = ScriptedStream(b"-ERR too many connections\r\n")

    with pytest.raises(ResponseError) as excinfo:
        Pop3Client.connect(stream)
    assert excinfo.value.message == "too many connections"
    assert stream.closed


def test_authenticate_sends_user_then_pass():
    client, stream = _scripted(b"+OK\r\n", b"+OK logged in\r\n")

    client.authenticate("alice", "secret")

    assert bytes(stream.written) == b"USER alice\r\nPASS secret\r\n"


def test_authenticate_rejection_carries_server_text():
    mailbox = FakeMailbox.with_messages(1)
    client = Pop3Client(FakeStream(FakePop3Session(mailbox)))

    with pytest.raises(ResponseError) as excinfo:
        client.authenticate("alice", "wrong")
    assert excinfo.value.message == "invalid password"


def test_commands_before_login_are_rejected():
    mailbox = FakeMailbox.with_messages(1)
    client = Pop3Client(FakeStream(FakePop3Session(mailbox)))

    with pytest.raises(ResponseError):
        client.stat()


def test_stat_returns_count_and_size():
    client, stream = _scripted(b"+OK 2 320\r\n")

    assert client.stat() == (2, 320)
    assert bytes(stream.written) == b"STAT\r\n"


def test_list_single_message():
    client, stream = _scripted(b"+OK 3 1200\r\n")

    assert client.list(3) == (3, 1200)
    assert bytes(stream.written) == b"LIST 3\r\n"


def test_list_all_returns_numbers_and_sizes():
    client, _ = _scripted(b"+OK 2 messages\r\n1 120\r\n2 340\r\n.\r\n")

    assert client.list_all() == [
        MessageInfo(number=1, size=120, uid=""),
        MessageInfo(number=2, size=340, uid=""),
    ]


def test_uidl_all_returns_numbers_and_uids():
    client, _ = _scripted(b"+OK\r\n1 whqtswO00WBw418f9t5JxYwZ\r\n2 QhdPYR:00WBw1Ph7x7\r\n.\r\n")

    assert client.uidl_all() == [
        MessageInfo(number=1, uid="whqtswO00WBw418f9t5JxYwZ"),
        MessageInfo(number=2, uid="QhdPYR:00WBw1Ph7x7"),
    ]


def test_uidl_single_message():
    client, _ = _scripted(b"+OK 2 QhdPYR:00WBw1Ph7x7\r\n")

    assert client.uidl(2) == (2, "QhdPYR:00WBw1Ph7x7")


def test_empty_listing():
    client, _ = _scripted(b"+OK 0 messages\r\n.\r\n")

    assert client.list_all() == []


def test_one_malformed_listing_line_fails_the_whole_call():
    client, _ = _scripted(b"+OK\r\n1 120\r\n2 lots\r\n.\r\n")

    with pytest.raises(ParseError) as excinfo:
        client.list_all()
    assert excinfo.value.line == "2 lots"


@pytest.mark.parametrize(
    "line",
    [
        "",
        "7",
        "x 10",
        "1 -5",
        "-1 10",
        "1 18446744073709551616",
        "1 \u00b2",
        "\u0663 10",
    ],
)
def test_number_and_size_rejects_malformed_lines(line):
    with pytest.raises(ParseError):
        parse_number_and_size(line)


def test_number_and_size_ignores_trailing_fields():
    assert parse_number_and_size("1 120 extra") == (1, 120)


@pytest.mark.parametrize("line", ["", "3", "three abc", "\u0663 abc"])
def test_number_and_uid_rejects_malformed_lines(line):
    with pytest.raises(ParseError):
        parse_number_and_uid(line)


def test_stat_parse_error_is_not_response_error():
    client, _ = _scripted(b"+OK two 320\r\n")

    with pytest.raises(ParseError):
        client.stat()


def test_stat_with_non_ascii_digits_is_parse_error():
    client, _ = _scripted("+OK 1 ²\r\n".encode("utf-8"), b"+OK\r\n")

    with pytest.raises(ParseError):
        client.stat()
    # A parse failure leaves the session in step with the server.
    client.noop()
    assert not client.closed


def test_retr_returns_unstuffed_body():
    client, stream = _scripted(b"+OK 40 octets\r\nSubject: hi\r\n\r\n..hello\r\n.\r\n")

    assert client.retr(1) == "Subject: hi\r\n\r\n.hello"
    assert bytes(stream.written) == b"RETR 1\r\n"


def test_retr_of_missing_message_is_response_error():
    client, _ = _scripted(b"-ERR no such message\r\n+OK 1 10\r\n")

    with pytest.raises(ResponseError):
        client.retr(9)
    # The session is still usable after a rejection.
    assert client.stat() == (1, 10)


def test_simple_verbs_write_their_commands():
    client, stream = _scripted(b"+OK\r\n", b"+OK\r\n", b"+OK\r\n")

    client.dele(4)
    client.noop()
    client.rset()

    assert bytes(stream.written) == b"DELE 4\r\nNOOP\r\nRSET\r\n"


def test_quit_closes_the_client():
    client, stream = _scripted(b"+OK bye\r\n")

    client.quit()

    assert client.closed
    assert stream.closed
    with pytest.raises(ConnectionClosedError):
        client.noop()


def test_quit_closes_even_when_rejected():
    client, stream = _scripted(b"-ERR some deleted messages not removed\r\n")

    with pytest.raises(ResponseError):
        client.quit()
    assert stream.closed


def test_context_manager_closes_the_stream():
    stream = ScriptedStream(GREETING)

    with Pop3Client(stream) as client:
        assert not client.closed

    assert stream.closed


def test_end_of_stream_closes_the_client():
    client, stream = _scripted()

    with pytest.raises(EndOfStream):
        client.noop()
    assert client.closed
    assert stream.closed


def test_transport_error_closes_the_client():
    client, stream = _scripted(b"+OK \xff\xfe\r\n", b"+OK\r\n")

    with pytest.raises(TransportError) as excinfo:
        client.stat()
    assert not isinstance(excinfo.value, EndOfStream)
    assert client.closed
    assert stream.closed
    with pytest.raises(ConnectionClosedError):
        client.noop()


def test_overlong_body_line_closes_the_client(monkeypatch):
    monkeypatch.setattr("mailpop.pop3.transport.MAX_BODY_LINE", 16)
    client, _ = _scripted(b"+OK\r\n" + b"z" * 40 + b"\r\n.\r\n", b"+OK 1 10\r\n")

    with pytest.raises(TransportError):
        client.retr(1)
    assert client.closed


def test_is_closed_false_when_server_answers(client, dialer):
    assert client.is_closed() is False
    assert dialer.commands[-1][-1] == "STAT"


def test_is_closed_false_on_negative_reply():
    client, stream = _scripted(b"-ERR busy\r\n")

    assert client.is_closed() is False
    assert bytes(stream.written) == b"STAT\r\n"
    assert not client.closed


def test_is_closed_true_after_hang_up(client, dialer):
    dialer.streams[-1].hang_up()

    assert client.is_closed() is True
    assert client.closed


def test_is_closed_true_when_stat_reply_is_unreadable():
    client, stream = _scripted(b"+OK \xff\xfe\r\n")

    assert client.is_closed() is True
    assert client.closed
    assert stream.closed


def test_is_closed_true_without_probe_once_closed():
    client, stream = _scripted()
    client.close()

    assert client.is_closed() is True
    assert stream.written == bytearray()


def test_deletions_commit_only_on_quit(mailbox, dialer):
    with dialer() as session:
        session.dele(1)
        session.dele(2)
        assert session.stat()[0] == 3
        session.rset()
        session.dele(5)
        session.quit()

    assert mailbox.uids() == ["uid-1", "uid-2", "uid-3", "uid-4"]
