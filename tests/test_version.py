"""
Tests for semantic version parsing and precedence.
"""

import pytest

from backend.clusterselect.version import Version, VersionError


class TestParse:
    """Tests for Version.parse."""

    def test_plain(self):
        """Test a MAJOR.MINOR.PATCH version."""
        v = Version.parse("1.25.0")
        assert (v.major, v.minor, v.patch) == (1, 25, 0)
        assert v.pre_release == ()

    def test_leading_v(self):
        """Test the optional leading v."""
        v = Version.parse("v1.30.6")
        assert (v.major, v.minor, v.patch) == (1, 30, 6)

    def test_pre_release_and_build(self):
        """Test pre-release identifiers and build metadata."""
        v = Version.parse("1.0.0-rc.1+build.5")
        assert v.pre_release == ("rc", "1")
        assert v.build_metadata == "build.5"
        assert str(v) == "1.0.0-rc.1+build.5"

    @pytest.mark.parametrize("text,message", [
        ("foo", "could not parse"),
        ("1.24", "illegal version string"),
        ("1.2.3.4", "illegal version string"),
        ("01.2.3", "zero-prefixed"),
        ("1.2.3-", "pre-release/metadata"),
        ("1.2.3\n", "could not parse"),
        ("\u20031.2.3", "could not parse"),
    ])
    def test_invalid(self, text, message):
        """Test malformed versions are rejected with a reason."""
        with pytest.raises(VersionError) as exc_info:
            Version.parse(text)
        assert message in str(exc_info.value)


class TestCompare:
    """Tests for version precedence."""

    def test_greater(self):
        """Test a higher minor version compares greater."""
        assert Version.parse("1.25.0").compare("1.24.0") == 1
        assert Version.parse("1.24.0").compare("1.25.0") == -1

    def test_equal_with_and_without_prefix(self):
        """Test the v prefix does not affect ordering."""
        assert Version.parse("v1.2.3").compare("1.2.3") == 0

    def test_numeric_components(self):
        """Test components compare numerically, not lexically."""
        assert Version.parse("1.10.0").compare("1.9.0") == 1

    def test_pre_release_precedence(self):
        """Test the semver 2.0.0 pre-release ordering example."""
        ordered = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        for lower, higher in zip(ordered, ordered[1:]):
            assert Version.parse(lower).compare(higher) == -1
            assert Version.parse(higher).compare(lower) == 1

    def test_build_metadata_ignored(self):
        """Test build metadata does not affect precedence."""
        assert Version.parse("1.0.0+build1").compare("1.0.0+build2") == 0

    def test_invalid_other(self):
        """Test comparing against an invalid version fails."""
        with pytest.raises(VersionError):
            Version.parse("1.0.0").compare("latest")
