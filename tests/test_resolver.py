"""
Tests for the Location Resolver.
"""

import pytest

from sitemirror.config.settings import PathTemplates, Settings
from sitemirror.engine.resolver import extract_code, resolve
from sitemirror.errors import ConfigurationError, InvalidHostnameFormat


class TestExtractCode:
    """Tests for location code extraction."""

    @pytest.mark.parametrize(
        "hostname,code",
        [
            ("12FILESRV01", "12"),
            ("07srv", "07"),
            ("99", "99"),
            ("123server", "12"),
        ],
    )
    def test_leading_two_digits(self, hostname, code):
        """The code is the two leading digits."""
        assert extract_code(hostname) == code

    @pytest.mark.parametrize(
        "hostname",
        ["AB1server", "1server", "", "server12", "x12", "\u0661\u0662server", "\uff11\uff12srv"],
    )
    def test_non_matching_hostname_raises(self, hostname):
        """Hostnames without a two-digit prefix are rejected."""
        with pytest.raises(InvalidHostnameFormat):
            extract_code(hostname)

    def test_custom_pattern(self):
        """A custom pattern can select a different code width."""
        assert extract_code("123server", r"^(\d{3})") == "123"

    def test_custom_pattern_is_ascii_only(self):
        """\\d in a configured pattern still matches only 0-9."""
        with pytest.raises(InvalidHostnameFormat):
            extract_code("\u0661\u0662server", r"^(\d{2})")


class TestResolve:
    """Tests for resolve()."""

    def test_default_templates(self):
        """Default templates produce UNC sources and drive destinations."""
        identity = resolve("12FILESRV01", Settings())

        assert identity.code == "12"
        assert identity.hostname == "12FILESRV01"
        assert identity.addresses.source_share == r"\\12FILESRV01\Share"
        assert identity.addresses.source_profile == r"\\12FILESRV01\Profiles"
        assert identity.addresses.destination_share == r"D:\Mirror\12\Share"
        assert identity.addresses.destination_profile == r"D:\Mirror\12\Profiles"
        assert identity.tag == "Location12"

    def test_deterministic(self):
        """Resolving the same hostname twice gives equal identities."""
        settings = Settings()
        assert resolve("34srv", settings) == resolve("34srv", settings)

    def test_whitespace_is_stripped(self):
        """Surrounding whitespace does not affect resolution."""
        assert resolve("  12srv\n", Settings()).hostname == "12srv"

    def test_invalid_hostname_is_configuration_error(self, tmp_path):
        """Scenario D: AB1server fails fast without touching disk."""
        settings = Settings(log_root=str(tmp_path / "logs"))

        with pytest.raises(ConfigurationError):
            resolve("AB1server", settings)

        assert not (tmp_path / "logs").exists()

    def test_identity_is_immutable(self):
        """LocationIdentity cannot be modified after creation."""
        identity = resolve("12srv", Settings())
        with pytest.raises(Exception):
            identity.code = "13"

    def test_addresses_items_order(self):
        """items() yields all four paths in a fixed order."""
        identity = resolve("12srv", Settings())
        names = [name for name, _ in identity.addresses.items()]
        assert names == [
            "source_share",
            "source_profile",
            "destination_share",
            "destination_profile",
        ]

    def test_unfillable_template_is_configuration_error(self):
        """A template that slipped past validation fails as configuration."""
        paths = PathTemplates.model_construct(
            source_share=r"\\{hostname}\Share",
            source_profile=r"\\{hostname}\Profiles",
            destination_share=r"D:\Mirror\{site}\Share",
            destination_profile=r"D:\Mirror\{code}\Profiles",
        )
        settings = Settings().model_copy(update={"paths": paths})

        with pytest.raises(ConfigurationError, match="destination_share"):
            resolve("12srv", settings)
