"""Tests for the centralized version module."""

from flexconf.core import PACKAGE_NAME, PACKAGE_VERSION, get_package_info


def test_package_name():
    """Test that package name is correct."""
    assert PACKAGE_NAME == "flexconf"


def test_package_version():
    """Test that package version is resolved from the installed distribution."""
    assert PACKAGE_VERSION != "unknown"
    assert "." in PACKAGE_VERSION


def test_get_package_info():
    """Test that get_package_info returns correct tuple."""
    name, version = get_package_info()
    assert name == PACKAGE_NAME
    assert version == PACKAGE_VERSION
