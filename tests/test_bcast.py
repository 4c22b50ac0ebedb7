import json
import queue
import socket
import threading
from dataclasses import dataclass

import pytest

from patientbeacon.network.bcast import decode, encode, receive
from patientbeacon.records import Message, PeerStatus


@dataclass
class NoDefaults:
    a: int
    b: str


def test_string_wire_format():
    assert encode("abc") == b'string"abc"'


def test_dataclass_wire_format_uses_type_name_and_upper_keys():
    data = encode(Message(ip="10.0.0.1", uuid="beef"))
    assert data.startswith(b"Message{")
    assert json.loads(data[len(b"Message"):]) == {"IP": "10.0.0.1", "UUID": "beef"}


@pytest.mark.parametrize("value, tp", [("hello", str), (42, int), (True, bool), (1.5, float)])
def test_builtin_round_trip(value, tp):
    assert decode(encode(value), [tp]) == [value]


def test_dataclass_round_trip():
    msg = Message(ip="192.168.0.5", uuid="abcd")
    assert decode(encode(msg), [str, Message]) == [msg]


def test_dataclass_keys_match_case_insensitively():
    assert decode(b'Message{"ip":"x","Uuid":"y"}', [Message]) == [Message(ip="x", uuid="y")]


def test_only_matching_type_is_decoded():
    status = PeerStatus(ip="h", online=True)
    assert decode(encode(status), [Message, PeerStatus, str]) == [status]


def test_unmatched_tag_gives_nothing():
    assert decode(encode(5), [str, Message]) == []


def test_malformed_body_is_dropped():
    assert decode(b'string"unterminated', [str]) == []


def test_wrong_json_type_is_dropped():
    assert decode(b"int\"5\"", [int]) == []


def test_missing_required_fields_is_dropped():
    assert decode(b'NoDefaults{"A":1}', [NoDefaults]) == []


def test_duplicate_types_raise():
    with pytest.raises(ValueError):
        decode(encode("x"), [str, str])


def test_unsupported_type_raises():
    with pytest.raises(TypeError):
        decode(b"", [complex])
    with pytest.raises(TypeError):
        encode(object())


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


def test_receive_delivers_decoded_messages():
    port = _free_port()
    delivered = queue.Queue()
    stop = threading.Event()
    thread = threading.Thread(
        target=receive, args=(port, [str], delivered.put, stop), daemon=True
    )
    thread.start()
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            got = None
            for _ in range(40):
                sender.sendto(encode("uuid-1"), ("127.0.0.1", port))
                try:
                    got = delivered.get(timeout=0.1)
                    break
                except queue.Empty:
                    continue
        assert got == "uuid-1"
    finally:
        stop.set()
        thread.join(timeout=2)
    assert not thread.is_alive()