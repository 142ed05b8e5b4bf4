"""Tests for hostname parsing."""

import pytest

from growplate.platform.tenant.domain import (
    hostname_from_headers,
    normalize_domain,
    parse_domain,
    validate_domain,
)

PLATFORM = "growplate.com"


class TestParseDomain:
    def test_platform_subdomain(self):
        info = parse_domain("Pizzeria.GrowPlate.com", PLATFORM)

        assert info.hostname == "pizzeria.growplate.com"
        assert info.subdomain == "pizzeria"
        assert info.domain == "growplate.com"
        assert info.is_custom_domain is False
        assert info.is_localhost is False

    def test_port_is_split_off(self):
        info = parse_domain("pizzeria.growplate.com:8443", PLATFORM)

        assert info.hostname == "pizzeria.growplate.com"
        assert info.port == 8443
        assert info.subdomain == "pizzeria"

    def test_custom_domain(self):
        info = parse_domain("order.sushibar.example", PLATFORM)

        assert info.is_custom_domain is True
        assert info.domain == "order.sushibar.example"
        assert info.subdomain is None

    def test_two_labels_under_platform_is_custom(self):
        info = parse_domain("a.b.growplate.com", PLATFORM)

        assert info.is_custom_domain is True
        assert info.subdomain is None

    def test_bare_platform_domain_is_not_a_subdomain(self):
        info = parse_domain("growplate.com", PLATFORM)

        assert info.subdomain is None
        assert info.is_custom_domain is True

    def test_suffix_lookalike_is_custom(self):
        info = parse_domain("evilgrowplate.com", PLATFORM)

        assert info.is_custom_domain is True
        assert info.subdomain is None

    @pytest.mark.parametrize(
        "host",
        ["localhost", "localhost:3000", "127.0.0.1:8000", "[::1]:3000", "10.0.0.5", "shop.localhost"],
    )
    def test_localhost_detection(self, host):
        info = parse_domain(host, PLATFORM)

        assert info.is_localhost is True
        assert info.is_custom_domain is False

    def test_ipv6_with_port(self):
        info = parse_domain("[::1]:3000", PLATFORM)

        assert info.hostname == "::1"
        assert info.port == 3000

    def test_scheme_path_and_trailing_dot_are_ignored(self):
        info = parse_domain("https://pizzeria.growplate.com./menu", PLATFORM)

        assert info.hostname == "pizzeria.growplate.com"
        assert info.subdomain == "pizzeria"

    @pytest.mark.parametrize("host", [None, "", "   ", ":8080"])
    def test_empty_input_gives_empty_hostname(self, host):
        info = parse_domain(host, PLATFORM)

        assert info.hostname == ""

    def test_garbage_port_is_best_effort(self):
        info = parse_domain("pizzeria.growplate.com:abc", PLATFORM)

        assert info.hostname == "pizzeria.growplate.com"
        assert info.port is None
        assert info.is_custom_domain is True


class TestValidateDomain:
    @pytest.mark.parametrize(
        "domain", ["growplate.com", "pizzeria.growplate.com", "a-b.example", "x1.y2.z3"]
    )
    def test_valid(self, domain):
        assert validate_domain(domain)

    @pytest.mark.parametrize(
        "domain",
        ["", "-bad.com", "bad-.com", "under_score.com", "a..b", "a" * 64 + ".com", "a." * 127 + "a"],
    )
    def test_invalid(self, domain):
        assert not validate_domain(domain)

    def test_normalize(self):
        assert normalize_domain(" HTTP://Shop.Example.com:80/path ") == "shop.example.com"


class TestHostnameFromHeaders:
    def test_forwarded_host_wins(self):
        headers = {"x-forwarded-host": "pizzeria.growplate.com, proxy.internal", "host": "lb:80"}

        assert hostname_from_headers(headers) == "pizzeria.growplate.com"

    def test_falls_back_to_host(self):
        assert hostname_from_headers({"host": "sushi.growplate.com"}) == "sushi.growplate.com"

    def test_falls_back_to_url_host(self):
        assert hostname_from_headers({}, "fallback.example") == "fallback.example"
