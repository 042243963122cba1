# SPDX-License-Identifier: MIT
"""Unit tests for semantic version parsing."""

import pytest

from extension_version import (
    InvalidVersionError,
    Version,
    clean_version,
    is_valid_semver,
    parse_version,
)


class TestParseVersion:
    """Tests for parse_version function."""

    def test_basic_version(self):
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert v.prerelease is None
        assert v.build is None

    def test_prerelease_and_build(self):
        v = parse_version("2.0.0-rc.1+sha.5114f85")
        assert v.prerelease == "rc.1"
        assert v.build == "sha.5114f85"
        assert v.prerelease_identifiers == ("rc", "1")

    def test_leading_v_is_dropped(self):
        """Test that a v prefix names the same release."""
        assert parse_version("v0.3.0") == parse_version("0.3.0")
        assert str(parse_version("=1.0.0")) == "1.0.0"

    def test_whitespace_is_stripped(self):
        assert str(parse_version("  1.0.0\n")) == "1.0.0"

    def test_roundtrip_string(self):
        assert str(parse_version("1.0.0-alpha.1+001")) == "1.0.0-alpha.1+001"

    @pytest.mark.parametrize(
        "value",
        ["", "1.0", "1", "01.0.0", "1.0.0-", "1.0.0-01", "a.b.c", "1.0.0+", "1.0.0.0"],
    )
    def test_invalid_versions(self, value):
        with pytest.raises(InvalidVersionError):
            parse_version(value)

    def test_non_string_rejected(self):
        with pytest.raises(InvalidVersionError) as exc_info:
            parse_version(100)  # type: ignore[arg-type]
        assert "must be a string" in exc_info.value.message

    def test_invalid_version_is_value_error(self):
        with pytest.raises(ValueError):
            parse_version("nope")


class TestIsValidSemver:
    """Tests for is_valid_semver function."""

    def test_valid(self):
        assert is_valid_semver("1.0.0") is True
        assert is_valid_semver("0.0.1-beta") is True

    def test_invalid(self):
        assert is_valid_semver("1.0") is False
        assert is_valid_semver(None) is False  # type: ignore[arg-type]


class TestCleanVersion:
    """Tests for clean_version function."""

    def test_normalizes(self):
        assert clean_version(" v1.0.0-beta ") == "1.0.0-beta"
        assert clean_version("=2.1.0+build.7") == "2.1.0+build.7"

    def test_invalid(self):
        assert clean_version("1.0") is None
        assert clean_version("") is None


class TestVersionObject:
    def test_is_prerelease(self):
        assert Version(1, 0, 0, prerelease="beta").is_prerelease is True
        assert Version(1, 0, 0).is_prerelease is False
        assert Version(1, 0, 0).prerelease_identifiers == ()
