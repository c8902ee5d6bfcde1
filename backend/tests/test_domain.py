"""
Tests for domain.py - hostname normalisation and the SSRF gate.
"""
import pytest

from companyintel.services.domain import (
    is_valid_domain,
    linkedin_search_url,
    normalize_domain,
)


class TestNormalizeDomain:
    def test_strips_scheme_www_and_path(self):
        assert normalize_domain("https://www.Example.com/about?x=1") == "example.com"

    def test_email_address_reduces_to_host(self):
        assert normalize_domain("jane.doe@Acme.io") == "acme.io"

    def test_bare_host_is_lowercased(self):
        assert normalize_domain("  Sub.Example.CO.UK ") == "sub.example.co.uk"

    def test_empty_values_are_none(self):
        assert normalize_domain(None) is None
        assert normalize_domain("") is None
        assert normalize_domain("https://") is None


class TestIsValidDomain:
    @pytest.mark.parametrize(
        "value",
        ["192.168.1.5", "localhost", "10.0.0.1", "not-a-domain"],
    )
    def test_rejects_documented_examples(self, value):
        assert is_valid_domain(value) is False

    @pytest.mark.parametrize("value", ["example.com", "sub.example.co.uk"])
    def test_accepts_documented_examples(self, value):
        assert is_valid_domain(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "127.0.0.1",
            "172.16.0.10",
            "172.31.255.1",
            "169.254.169.254",
            "0.0.0.0",
            "8.8.8.8",
            "localhost.localdomain",
            "a.b",
            "-example.com",
            "example.com-",
            "exa mple.com",
            "example.com:8080",
            "a..com",
            "printer.local",
        ],
    )
    def test_rejects_private_literal_and_malformed_hosts(self, value):
        assert is_valid_domain(value) is False

    def test_public_172_range_outside_private_block_is_allowed(self):
        assert is_valid_domain("172.example.com") is True

    def test_accepts_full_urls_after_normalisation(self):
        assert is_valid_domain("https://www.example.com/about") is True
        assert is_valid_domain("http://192.168.0.1/admin") is False


class TestLinkedinSearchUrl:
    def test_company_name_is_url_encoded(self):
        url = linkedin_search_url("Acme & Sons")
        assert url == "https://www.linkedin.com/search/results/companies/?keywords=Acme%20%26%20Sons"
