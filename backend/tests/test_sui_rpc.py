import pytest
import requests

from sui_rpc import SuiRpcClient, SuiRpcError, fullnode_url, move_event_type
from fakes import FakeRpc


class FakeResponse:
    def __init__(self, body, status_code=200):
        self._body = body
        self.status_code = status_code

    def json(self):
        return self._body


def client_returning(monkeypatch, response):
    client = SuiRpcClient("http://fullnode.invalid")
    sent = []

    def post(url, json=None, timeout=None):
        sent.append(json)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(client.session, "post", post)
    return client, sent


def test_call_returns_result(monkeypatch):
    client, sent = client_returning(monkeypatch, FakeResponse({"jsonrpc": "2.0", "id": 1, "result": {"totalBalance": "7"}}))
    assert client.call("suix_getBalance", ["0xme"]) == {"totalBalance": "7"}
    assert sent[0]["method"] == "suix_getBalance"
    assert sent[0]["jsonrpc"] == "2.0"


def test_rpc_error_is_raised_with_code(monkeypatch):
    body = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid params"}}
    client, _ = client_returning(monkeypatch, FakeResponse(body))
    with pytest.raises(SuiRpcError) as exc:
        client.call("sui_getObject", ["0x1"])
    assert exc.value.code == -32602
    assert "Invalid params" in str(exc.value)


def test_http_failure_is_raised(monkeypatch):
    client, _ = client_returning(monkeypatch, FakeResponse({}, status_code=503))
    with pytest.raises(SuiRpcError):
        client.call("sui_getObject", ["0x1"])


def test_connection_failure_is_raised(monkeypatch):
    client, _ = client_returning(monkeypatch, requests.ConnectionError("refused"))
    with pytest.raises(SuiRpcError):
        client.call("sui_getObject", ["0x1"])


def test_missing_result_is_raised(monkeypatch):
    client, _ = client_returning(monkeypatch, FakeResponse({"jsonrpc": "2.0", "id": 1}))
    with pytest.raises(SuiRpcError):
        client.call("sui_getObject", ["0x1"])


class NotJsonResponse:
    status_code = 200
    text = "<html>bad gateway</html>"

    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


def test_non_json_body_is_raised(monkeypatch):
    client, _ = client_returning(monkeypatch, NotJsonResponse())
    with pytest.raises(SuiRpcError) as exc:
        client.call("sui_getObject", ["0x1"])
    assert "non-JSON" in str(exc.value)


def test_fullnode_url():
    assert fullnode_url("testnet") == "https://fullnode.testnet.sui.io:443"
    with pytest.raises(ValueError):
        fullnode_url("moonnet")


def test_move_event_type():
    assert move_event_type("0xabc", "PostCreated") == "0xabc::suitter::PostCreated"


def test_multi_get_objects_batches_and_keeps_order(rpc):
    ids = [f"0x{i}" for i in range(120)]
    for object_id in ids:
        rpc.add({"objectId": object_id})

    results = rpc.multi_get_objects(ids)

    assert [r["data"]["objectId"] for r in results] == ids
    batches = [params[0] for method, params in rpc.calls if method == "sui_multiGetObjects"]
    assert [len(b) for b in batches] == [50, 50, 20]


def test_iter_events_follows_cursor_and_stops_at_max(rpc):
    for i in range(7):
        rpc.emit("0xpkg::suitter::PostCreated", {"post_id": f"0x{i}"})

    events = list(rpc.iter_events("0xpkg::suitter::PostCreated", max_items=5, page_size=2))

    assert [e["parsedJson"]["post_id"] for e in events] == ["0x6", "0x5", "0x4", "0x3", "0x2"]
    assert rpc.methods().count("suix_queryEvents") == 3


def test_iter_events_stops_when_exhausted(rpc):
    rpc.emit("0xpkg::suitter::PostCreated", {"post_id": "0x1"})
    events = list(rpc.iter_events("0xpkg::suitter::PostCreated", max_items=100))
    assert len(events) == 1


def test_unsafe_move_call_params(rpc):
    tx_bytes = rpc.unsafe_move_call("0xme", "0xpkg", "suitter", "follow", ["0xa", "0xb", "0x6"], 1000)
    method, params = rpc.calls[-1]
    assert method == "unsafe_moveCall"
    assert params == ["0xme", "0xpkg", "suitter", "follow", [], ["0xa", "0xb", "0x6"], None, "1000"]
    assert tx_bytes


def test_balance(rpc):
    assert rpc.get_balance("0xme") == 5000000000


def test_iter_events_without_max_reads_whole_stream(rpc):
    for i in range(130):
        rpc.emit("0xpkg::suitter::ProfileCreated", {"profile_id": f"0x{i}"})

    events = list(rpc.iter_events("0xpkg::suitter::ProfileCreated", max_items=None))

    assert len(events) == 130
    assert events[-1]["parsedJson"]["profile_id"] == "0x0"
    assert rpc.methods().count("suix_queryEvents") == 3
