"""
Tests for building the outbound request.

Tests cover:
- Method propagation
- Verbatim URL construction (path, query, escapes)
- Header copying with multi-value preservation
- Basic credential injection overriding inbound Authorization
- Client-address header from the peer address
- Malformed requests
"""

import base64

import pytest

from auth_proxy.errors import MalformedRequestError
from auth_proxy.models import InboundRequest, ProxyConfig
from auth_proxy.proxy.translator import (
    basic_auth_header,
    build_target_url,
    client_host,
    translate,
)

TEST_UPSTREAM_BASE = "http://internal-app:8080"
EXPECTED_AUTH = "Basic " + base64.b64encode(b"joe:secret").decode("ascii")


@pytest.fixture
def inbound():
    """Create a plain inbound GET request from 127.0.0.1:54321."""
    return InboundRequest(
        method="GET",
        target="/test",
        headers=[("host", "proxy.example.com"), ("user-agent", "test-agent")],
        remote_addr="127.0.0.1:54321",
    )


class TestMethod:
    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE", "HEAD"])
    def test_method_is_preserved(self, inbound, proxy_config, method):
        inbound.method = method

        outbound = translate(inbound, proxy_config)

        assert outbound.method == method

    @pytest.mark.parametrize("method", ["", "GE T", "GET\r\n", "(GET)"])
    def test_invalid_method_is_malformed(self, inbound, proxy_config, method):
        inbound.method = method

        with pytest.raises(MalformedRequestError):
            translate(inbound, proxy_config)


class TestTargetUrl:
    """Test URL construction from the request-target."""

    def test_basic_path(self, inbound, proxy_config):
        inbound.target = "/api/users"

        outbound = translate(inbound, proxy_config)

        assert outbound.url == f"{TEST_UPSTREAM_BASE}/api/users"

    def test_query_is_kept(self, inbound, proxy_config):
        inbound.target = "/api/search?q=test&limit=10"

        outbound = translate(inbound, proxy_config)

        assert outbound.url == f"{TEST_UPSTREAM_BASE}/api/search?q=test&limit=10"

    def test_escapes_are_not_decoded(self, inbound, proxy_config):
        """Percent-escapes pass through untouched, never decoded or re-encoded."""
        inbound.target = "/files/a%2Fb%20c?q=hello%20world&tag=foo%2Fbar"

        outbound = translate(inbound, proxy_config)

        assert (
            outbound.url
            == f"{TEST_UPSTREAM_BASE}/files/a%2Fb%20c?q=hello%20world&tag=foo%2Fbar"
        )

    def test_path_is_not_normalized(self, inbound, proxy_config):
        inbound.target = "/a/./b/../c//d"

        outbound = translate(inbound, proxy_config)

        assert outbound.url == f"{TEST_UPSTREAM_BASE}/a/./b/../c//d"

    def test_root_path(self, inbound, proxy_config):
        inbound.target = "/"

        outbound = translate(inbound, proxy_config)

        assert outbound.url == f"{TEST_UPSTREAM_BASE}/"

    def test_base_with_path_prefix(self):
        assert (
            build_target_url("https://svc.example.com/api/v1", "/users?id=1")
            == "https://svc.example.com/api/v1/users?id=1"
        )

    def test_empty_base_uses_absolute_target(self):
        """With no base, an absolute-form request-target is used as is."""
        assert (
            build_target_url("", "http://remote:9000/TestName")
            == "http://remote:9000/TestName"
        )

    def test_relative_result_is_malformed(self):
        with pytest.raises(MalformedRequestError):
            build_target_url("", "/only/a/path")

    def test_unsupported_scheme_is_malformed(self):
        with pytest.raises(MalformedRequestError):
            build_target_url("ftp://files.example.com", "/x")

    def test_unparseable_url_is_malformed(self, inbound):
        config = ProxyConfig(
            username="joe",
            password="secret",
            upstream_base="http://internal-app:notaport",
        )

        with pytest.raises(MalformedRequestError):
            translate(inbound, config)


class TestHeaderCopy:
    """Test header forwarding."""

    def test_custom_header_is_forwarded(self, inbound, proxy_config):
        inbound.headers.append(("Foo", "bar"))

        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("foo") == ["bar"]

    def test_multi_value_header_keeps_every_value_in_order(self, inbound, proxy_config):
        inbound.headers += [("accept", "text/html"), ("Accept", "application/json")]

        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("Accept") == ["text/html", "application/json"]

    def test_every_inbound_header_is_present(self, inbound, proxy_config):
        extra = [
            ("x-request-id", "abc"),
            ("cookie", "a=1"),
            ("x-forwarded-for", "10.0.0.1"),
        ]
        inbound.headers += extra

        outbound = translate(inbound, proxy_config)

        for header in [("user-agent", "test-agent")] + extra:
            assert header in outbound.headers

    def test_connection_headers_are_not_copied(self, inbound, proxy_config):
        """Host comes from the upstream URL and there is no body to frame."""
        inbound.headers += [("content-length", "12"), ("transfer-encoding", "chunked")]

        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("host") == []
        assert outbound.get_all("content-length") == []
        assert outbound.get_all("transfer-encoding") == []

    def test_inbound_headers_are_not_mutated(self, inbound, proxy_config):
        before = list(inbound.headers)

        translate(inbound, proxy_config)

        assert inbound.headers == before


class TestCredentialInjection:
    def test_basic_auth_header_encoding(self):
        assert basic_auth_header("joe", "secret") == EXPECTED_AUTH

    def test_basic_auth_header_non_ascii(self):
        expected = "Basic " + base64.b64encode("jöe:pä:ss".encode("utf-8")).decode()
        assert basic_auth_header("jöe", "pä:ss") == expected

    def test_authorization_is_injected(self, inbound, proxy_config):
        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("authorization") == [EXPECTED_AUTH]

    def test_inbound_authorization_is_replaced(self, inbound, proxy_config):
        inbound.headers += [
            ("Authorization", "Bearer token123"),
            ("authorization", "Basic Zm9vOmJhcg=="),
        ]

        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("Authorization") == [EXPECTED_AUTH]


class TestClientAddress:
    def test_port_is_stripped(self, inbound, proxy_config):
        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("X-Forward-For") == ["127.0.0.1"]

    def test_existing_value_is_overwritten(self, inbound, proxy_config):
        inbound.headers.append(("x-forward-for", "10.9.8.7"))

        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("X-Forward-For") == ["127.0.0.1"]

    def test_header_name_is_configurable(self, inbound):
        config = ProxyConfig(
            username="joe",
            password="secret",
            upstream_base=TEST_UPSTREAM_BASE,
            client_address_header="X-Real-IP",
        )

        outbound = translate(inbound, config)

        assert outbound.get_all("x-real-ip") == ["127.0.0.1"]
        assert outbound.get_all("x-forward-for") == []

    def test_missing_peer(self, inbound, proxy_config):
        inbound.remote_addr = None

        outbound = translate(inbound, proxy_config)

        assert outbound.get_all("X-Forward-For") == ["unknown"]

    @pytest.mark.parametrize(
        "remote_addr,expected",
        [
            ("127.0.0.1:54321", "127.0.0.1"),
            ("[::1]:8080", "::1"),
            ("[2001:db8::1]:443", "2001:db8::1"),
            ("testclient:50000", "testclient"),
            ("192.168.1.100", "192.168.1.100"),
            ("::1", "::1"),
            ("", "unknown"),
        ],
    )
    def test_client_host(self, remote_addr, expected):
        assert client_host(remote_addr) == expected
