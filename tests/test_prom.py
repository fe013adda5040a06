import urllib.error
import urllib.request

import pytest

from geyser_tools.metrics import Counter
from geyser_tools.prom import GrpcMessageKind, run_server
from geyser_tools.version import VERSION as VERSION_INFO

CUSTOM = Counter("test_prom_custom_total", "Custom counter")


@pytest.fixture(scope="module")
def server():
    srv = run_server(("127.0.0.1", 0), [CUSTOM])
    yield srv
    srv.shutdown()
    srv.server_close()


def _url(srv, path):
    host, port = srv.server_address[:2]
    return f"http://{host}:{port}{path}"


def _get(srv, path):
    with urllib.request.urlopen(_url(srv, path), timeout=5) as response:
        return response.status, response.read().decode()


def _status(srv, path):
    try:
        with urllib.request.urlopen(_url(srv, path), timeout=5) as response:
            return response.status
    except urllib.error.HTTPError as error:
        return error.code


@pytest.mark.parametrize(
    "field, kind",
    [
        ("account", GrpcMessageKind.ACCOUNT),
        ("slot", GrpcMessageKind.SLOT),
        ("transaction", GrpcMessageKind.TRANSACTION),
        ("block", GrpcMessageKind.BLOCK),
        ("ping", GrpcMessageKind.PING),
        ("pong", GrpcMessageKind.PONG),
        ("block_meta", GrpcMessageKind.BLOCK_META),
        ("entry", GrpcMessageKind.ENTRY),
    ],
)
def test_from_oneof(field, kind):
    assert GrpcMessageKind.from_oneof(field) is kind


def test_kind_labels():
    assert GrpcMessageKind.from_oneof("block_meta").value == "blockmeta"
    assert GrpcMessageKind.from_oneof("account").value == "account"
    assert GrpcMessageKind("unknown") is GrpcMessageKind.UNKNOWN


def test_from_oneof_unknown():
    with pytest.raises(ValueError):
        GrpcMessageKind.from_oneof("nothing")


def test_metrics_endpoint(server):
    CUSTOM.inc(3)
    status, body = _get(server, "/metrics")
    assert status == 200
    assert "# TYPE version counter" in body
    assert f'version{{buildts="{VERSION_INFO.buildts}"' in body
    assert f"test_prom_custom_total {CUSTOM.value}" in body


def test_not_found():
    srv = run_server(("127.0.0.1", 0))
    try:
        missing = _status(srv, "/other")
        found = _status(srv, "/metrics")
    finally:
        srv.shutdown()
        srv.server_close()
    assert missing == 404
    assert found == 200


def test_second_run_does_not_reregister(server):
    again = run_server("127.0.0.1:0", [CUSTOM])
    try:
        assert again.server_address[0] == "127.0.0.1"
        _, body = _get(again, "/metrics")
        assert body.count("# TYPE version counter") == 1
        assert sum(line.startswith("version{") for line in body.splitlines()) == 1
    finally:
        again.shutdown()
        again.server_close()


def test_bind_failure(server):
    with pytest.raises(OSError):
        run_server(server.server_address[:2])