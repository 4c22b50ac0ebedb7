from unittest import mock

import pytest

from patientbeacon.network.localip import local_ip


@pytest.fixture(autouse=True)
def clear_cache():
    local_ip.cache_clear()
    yield
    local_ip.cache_clear()


def _fake_conn(address):
    conn = mock.MagicMock()
    conn.getsockname.return_value = (address, 40000)
    return conn


def test_returns_socket_address():
    conn = _fake_conn("192.0.2.7")
    with mock.patch("socket.create_connection", return_value=conn) as create:
        assert local_ip() == "192.0.2.7"
    assert create.call_args[0][0] == ("8.8.8.8", 53)
    conn.close.assert_called_once()


def test_result_is_cached():
    conn = _fake_conn("192.0.2.8")
    with mock.patch("socket.create_connection", return_value=conn) as create:
        first = local_ip()
        second = local_ip()
    assert first == second == "192.0.2.8"
    assert create.call_count == 1


def test_failure_raises_and_is_not_cached():
    with mock.patch("socket.create_connection", side_effect=OSError("unreachable")):
        with pytest.raises(OSError):
            local_ip()
    conn = _fake_conn("192.0.2.9")
    with mock.patch("socket.create_connection", return_value=conn):
        assert local_ip() == "192.0.2.9"