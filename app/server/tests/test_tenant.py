"""Tests for tenant resolution from request hostnames."""

import pytest

from server.tenant import TenantResolver, extract_hostname, product_hostname_policy


@pytest.fixture
def resolver() -> TenantResolver:
    """Resolver with the product policy for `example.com` previews."""
    return TenantResolver(product_hostname_policy("example.com"))


class TestExtractHostname:
    """Test cases for picking the addressed hostname."""

    def test_forwarded_host_wins(self) -> None:
        """Test the forwarded host is used without its port."""
        headers = {"x-forwarded-host": "www.acme.com:8443"}

        assert extract_hostname(headers, "backend.internal") == "www.acme.com"

    def test_request_hostname(self) -> None:
        """Test the request hostname without a forwarded host."""
        assert extract_hostname({}, "acme.com") == "acme.com"
        assert extract_hostname({"x-forwarded-host": ""}, "acme.com") == "acme.com"

    def test_no_hostname(self) -> None:
        """Test a request without any hostname."""
        assert extract_hostname({}, None) == ""


class TestProductHostnamePolicy:
    """Test cases for the hostname normalisation rules."""

    @pytest.mark.parametrize(
        ("raw_host", "tenant_key"),
        [
            ("acme.com", "acme.com"),
            ("www.acme.com", "acme.com"),
            ("acme-com.preview.example.com", "acme.com"),
            ("www.acme-com.preview.example.com", "acme.com"),
            ("acme.com.local", "acme.com"),
            ("acme-com.local", "acme.com"),
            ("acme.preview.other.com", "acme.preview.other.com"),
            ("", ""),
        ],
    )
    def test_resolve(
        self, resolver: TenantResolver, raw_host: str, tenant_key: str
    ) -> None:
        """Test known host shapes."""
        assert resolver.resolve(raw_host) == tenant_key

    def test_only_first_hyphen(self, resolver: TenantResolver) -> None:
        """Test hosts with several hyphens keep all but the first."""
        assert resolver.resolve("my-shop-site.com") == "my.shop-site.com"

    def test_www_only_at_start(self, resolver: TenantResolver) -> None:
        """Test `www.` elsewhere in the host is kept."""
        assert resolver.resolve("shop.www.acme.com") == "shop.www.acme.com"

    @pytest.mark.parametrize(
        "host",
        ["acme.com", "acme-com.preview.example.com", "acme.com.local", "shop.acme.io"],
    )
    def test_idempotent(self, resolver: TenantResolver, host: str) -> None:
        """Test resolving twice changes nothing for hosts with one hyphen at most."""
        assert resolver.resolve(resolver.resolve(host)) == resolver.resolve(host)

    @pytest.mark.parametrize("host", ["acme.com", "acme-com.preview.example.com"])
    def test_www_prefix(self, resolver: TenantResolver, host: str) -> None:
        """Test a `www.` prefix resolves like the bare host."""
        assert resolver.resolve("www." + host) == resolver.resolve(host)

    def test_resolve_request(self, resolver: TenantResolver) -> None:
        """Test resolution of a proxied request."""
        headers = {"x-forwarded-host": "www.acme-com.preview.example.com:443"}

        assert resolver.resolve_request(headers, "backend.internal") == "acme.com"
