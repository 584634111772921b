# gateway/tests/test_identity_routing.py
# Client key resolution and route-table prefix matching.

import types

import pytest
from flask import Blueprint

from gateway.identity import resolve_client_key, validate_trusted_hops
from gateway.routing import RouteEntry, RouteTable, default_route_table


def _key(app, headers=None, remote="10.0.0.9", hops=1):
    from flask import request

    with app.test_request_context("/", headers=headers or {}, environ_base={"REMOTE_ADDR": remote}):
        return resolve_client_key(request, hops)


def test_peer_address_without_forwarded_header(app):
    assert _key(app) == "10.0.0.9"


def test_left_most_forwarded_address_is_used(app):
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
    assert _key(app, headers) == "203.0.113.7"


def test_ipv6_forwarded_address(app):
    assert _key(app, {"X-Forwarded-For": "2001:db8::1"}) == "2001:db8::1"


def test_malformed_forwarded_address_falls_back_to_peer(app):
    assert _key(app, {"X-Forwarded-For": "not-an-ip, 1.2.3.4"}) == "10.0.0.9"
    assert _key(app, {"X-Forwarded-For": ""}) == "10.0.0.9"


def test_zero_trusted_hops_ignores_forwarded_header(app):
    assert _key(app, {"X-Forwarded-For": "203.0.113.7"}, hops=0) == "10.0.0.9"


def test_default_table_gates_all_three_prefixes():
    table = default_route_table()
    for path in ("/generate-plan", "/curate-resources/x", "/pdf", "/pdf/chat/stream"):
        assert table.requires_ai_gate(path), path
    for path in ("/", "/health", "/pdfx", "/generate-planner", "/unknown"):
        assert not table.requires_ai_gate(path), path


def test_longest_prefix_wins():
    outer = Blueprint("outer", __name__)
    inner = Blueprint("inner", __name__)
    table = RouteTable([RouteEntry("/pdf", True, outer), RouteEntry("/pdf/public", False, inner)])
    assert table.match("/pdf/public/info").blueprint is inner
    assert table.match("/pdf/chat").blueprint is outer
    assert not table.requires_ai_gate("/pdf/public")
    assert table.match("/other") is None


def test_peer_address_comes_from_the_given_request():
    req = types.SimpleNamespace(headers={}, remote_addr="192.0.2.44")
    assert resolve_client_key(req, 1) == "192.0.2.44"
    assert resolve_client_key(types.SimpleNamespace(headers={}, remote_addr=None), 0) == "127.0.0.1"


@pytest.mark.parametrize("hops", [-1, 2, 5])
def test_unsupported_trusted_hops_are_rejected(hops):
    with pytest.raises(ValueError, match="TRUST_PROXY_HOPS"):
        validate_trusted_hops(hops)


def test_app_refuses_to_start_with_deep_proxy_chain(make_app):
    with pytest.raises(ValueError, match="TRUST_PROXY_HOPS"):
        make_app(TRUST_PROXY_HOPS=2)


def test_table_iterates_longest_prefix_first():
    bp = Blueprint("x", __name__)
    table = RouteTable([RouteEntry("/a", False, bp), RouteEntry("/a/b/c", False, bp), RouteEntry("/a/b", False, bp)])
    assert [e.path_prefix for e in table] == ["/a/b/c", "/a/b", "/a"]
