"""Unit tests for resolve_client_id: rate-limit client identity."""

import hashlib

from eventgate.services.ingestion import MAX_CLIENT_ID_LENGTH, resolve_client_id
from tests.unit.conftest import make_headers


class TestResolveClientId:
    def test_first_forwarded_entry(self):
        headers = make_headers(x_forwarded_for="203.0.113.50, 10.0.0.1")
        assert resolve_client_id(headers) == "203.0.113.50"

    def test_single_forwarded_entry(self):
        assert resolve_client_id(make_headers(x_forwarded_for="203.0.113.50")) == "203.0.113.50"

    def test_forwarded_wins_over_real_ip(self):
        headers = make_headers(x_forwarded_for="203.0.113.50", x_real_ip="198.51.100.1")
        assert resolve_client_id(headers) == "203.0.113.50"

    def test_real_ip_fallback(self):
        assert resolve_client_id(make_headers(x_real_ip="198.51.100.1")) == "198.51.100.1"

    def test_blank_forwarded_falls_through(self):
        headers = make_headers(x_forwarded_for=" , 10.0.0.1", x_real_ip="198.51.100.1")
        assert resolve_client_id(headers) == "198.51.100.1"

    def test_unknown(self):
        assert resolve_client_id(make_headers()) == "unknown"

    def test_header_names_are_case_insensitive(self):
        headers = make_headers(**{"X-Forwarded-For": "203.0.113.9"})
        assert resolve_client_id(headers) == "203.0.113.9"

    def test_long_value_is_hashed(self):
        long_value = "198.51.100.1" + "x" * 200
        client_id = resolve_client_id(make_headers(x_forwarded_for=long_value))
        assert client_id == hashlib.sha256(long_value.encode()).hexdigest()
        assert len(client_id) == MAX_CLIENT_ID_LENGTH

    def test_distinct_long_values_stay_distinct(self):
        first = resolve_client_id(make_headers(x_real_ip="a" * 100))
        second = resolve_client_id(make_headers(x_real_ip="a" * 99 + "b"))
        assert first != second

    def test_ipv6_is_kept(self):
        ipv6 = "2001:0db8:85a3:0000:0000:8a2e:0370:7334"
        assert resolve_client_id(make_headers(x_forwarded_for=ipv6)) == ipv6
