"""Tests for version string assembly."""

from unittest.mock import patch

from pagewright import version
from pagewright.version import BuildInfo, get_version_string


def test_version_string_with_commit():
    info = BuildInfo(commit="0123456789abcdef", date="2026-01-02T03:04:05+00:00", dirty=True)
    with patch.object(version, "get_build_info", return_value=info), \
            patch.object(version, "get_package_version", return_value="1.2.3"):
        assert get_version_string() == "pagewright 1.2.3 (0123456-dirty 2026-01-02T03:04:05+00:00)"


def test_version_string_without_build_info():
    info = BuildInfo(commit=None, date=None, dirty=False)
    with patch.object(version, "get_build_info", return_value=info), \
            patch.object(version, "get_package_version", return_value="0+unknown"):
        assert get_version_string() == "pagewright 0+unknown (unknown unknown)"


def test_build_info_falls_back_to_unknown():
    with patch.object(version, "_from_git_checkout", return_value=None), \
            patch.object(version, "_from_build_file", return_value=None), \
            patch.object(version, "_from_direct_url", return_value=None):
        assert version.get_build_info() == BuildInfo(None, None, False)
