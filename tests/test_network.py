import socket
from datetime import timedelta

import pytest

from kuberhealthy.network import (
    NetworkCheckError,
    NetworkConnectionChecker,
    NetworkSettings,
    settings_from_env,
    split_address,
)


@pytest.fixture
def listening_port():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(5)
    yield server.getsockname()[1]
    server.close()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def _checker(target, unreachable=False):
    return NetworkConnectionChecker(
        NetworkSettings(
            connection_target=target,
            target_unreachable=unreachable,
            check_timeout=timedelta(seconds=5),
        )
    )


def test_split_address_with_scheme():
    assert split_address("udp://10.0.0.1:53") == ("udp", "10.0.0.1:53")


def test_split_address_defaults_to_tcp():
    assert split_address("example.com:443") == ("tcp", "example.com:443")


def test_split_address_only_splits_once():
    assert split_address("tcp://a://b") == ("tcp", "a://b")


def test_settings_require_target():
    with pytest.raises(ValueError):
        settings_from_env({})


def test_settings_parse_unreachable_flag():
    settings = settings_from_env(
        {"CONNECTION_TARGET": "tcp://x:1", "CONNECTION_TARGET_UNREACHABLE": "true"}
    )
    assert settings.connection_target == "tcp://x:1"
    assert settings.target_unreachable is True


def test_settings_bad_flag_is_false():
    settings = settings_from_env(
        {"CONNECTION_TARGET": "tcp://x:1", "CONNECTION_TARGET_UNREACHABLE": "maybe"}
    )
    assert settings.target_unreachable is False


def test_do_checks_succeeds_on_open_port(listening_port):
    checker = _checker(f"tcp://127.0.0.1:{listening_port}")
    assert checker.do_checks() is None
    assert checker.run().ok is True


def test_do_checks_fails_on_closed_port(closed_port):
    target = f"127.0.0.1:{closed_port}"
    with pytest.raises(NetworkCheckError, match="is DOWN"):
        _checker(target).do_checks()


def test_run_reports_failure_with_message(closed_port):
    target = f"127.0.0.1:{closed_port}"
    result = _checker(target).run()
    assert result.ok is False
    assert result.errors[0].startswith(
        f"Network connection check determined that {target} is DOWN: "
    )


def test_run_succeeds_when_unreachable_expected(closed_port):
    result = _checker(f"127.0.0.1:{closed_port}", unreachable=True).run()
    assert result.ok is True
    assert result.errors == []


def test_unknown_network_fails():
    with pytest.raises(NetworkCheckError, match="unknown network"):
        _checker("sctp://127.0.0.1:80").do_checks()


def test_missing_port_fails():
    with pytest.raises(NetworkCheckError):
        _checker("127.0.0.1").do_checks()


def test_udp_connect_succeeds(closed_port):
    result = _checker(f"udp://127.0.0.1:{closed_port}").run()
    assert result.ok is True