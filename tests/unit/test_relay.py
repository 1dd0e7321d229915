"""Tests for relaying header credentials into tool-call arguments."""

from __future__ import annotations

import copy

import pytest
from starlette.datastructures import Headers

from travel_mcp.server.relay import extract_header_credential, relay_credentials


def _call(arguments=None, method="tools/call"):
    params = {"name": "client-getOffersToday"}
    if arguments is not None:
        params["arguments"] = arguments
    return {"jsonrpc": "2.0", "id": 3, "method": method, "params": params}


class TestExtractHeaderCredential:
    @pytest.mark.parametrize(
        "headers, expected",
        [
            ({"Authorization": "Bearer 1234567"}, "1234567"),
            ({"authorization": "bearer   abc "}, "abc"),
            ({"Authorization": "BEARER xyz"}, "xyz"),
            ({"Authorization": "raw-token"}, "raw-token"),
            ({"X-MCP-Proxy-Auth": "Bearer proxy"}, "proxy"),
            ({"Authorization": "Bearer ", "X-MCP-Proxy-Auth": "fallback"}, "fallback"),
            ({"Authorization": "first", "X-MCP-Proxy-Auth": "second"}, "first"),
            ({}, None),
            ({"Authorization": "   "}, None),
        ],
    )
    def test_extraction(self, headers, expected):
        assert extract_header_credential(headers) == expected

    def test_starlette_headers(self):
        headers = Headers(raw=[(b"x-mcp-proxy-auth", b"Bearer t")])
        assert extract_header_credential(headers) == "t"


class TestRelayCredentials:
    def test_injects_into_arguments(self):
        message = _call({"foo": 1})
        relayed = relay_credentials(message, {"Authorization": "Bearer 1234567"})
        assert relayed["params"]["arguments"] == {"foo": 1, "authorization": "1234567"}

    def test_injects_when_arguments_missing(self):
        relayed = relay_credentials(_call(), {"Authorization": "tok"})
        assert relayed["params"]["arguments"] == {"authorization": "tok"}

    def test_explicit_argument_wins(self):
        message = _call({"authorization": "explicit"})
        assert relay_credentials(message, {"Authorization": "Bearer header"}) is message

    def test_empty_argument_is_replaced(self):
        relayed = relay_credentials(_call({"authorization": ""}), {"Authorization": "Bearer h"})
        assert relayed["params"]["arguments"]["authorization"] == "h"

    def test_input_is_not_mutated(self):
        message = _call({"foo": 1})
        snapshot = copy.deepcopy(message)
        relay_credentials(message, {"Authorization": "Bearer x"})
        assert message == snapshot

    @pytest.mark.parametrize(
        "message",
        [
            {"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}},
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call"},
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"arguments": "bad"}},
            [{"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {}}],
            "not json-rpc",
        ],
    )
    def test_other_messages_pass_through(self, message):
        assert relay_credentials(message, {"Authorization": "Bearer x"}) is message

    def test_no_credential_header(self):
        message = _call({})
        assert relay_credentials(message, {}) is message
