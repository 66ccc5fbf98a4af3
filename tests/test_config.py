"""Tests for settings loading and the insecure-default warning."""

import logging

import pytest

from customer_registry.core.config import DEFAULT_SECRET_KEY, Settings, warn_if_default_secret


def test_default_secret_is_reported(caplog):
    with caplog.at_level(logging.WARNING, logger="customer_registry.core.config"):
        assert warn_if_default_secret(Settings(SECRET_KEY=DEFAULT_SECRET_KEY)) is True
    assert any("INSECURE Secret Key" in r.getMessage() for r in caplog.records)


def test_custom_secret_is_quiet(caplog):
    with caplog.at_level(logging.WARNING, logger="customer_registry.core.config"):
        assert warn_if_default_secret(Settings(SECRET_KEY="a" * 64)) is False
    assert caplog.records == []


def test_customer_storage_is_validated():
    assert Settings(CUSTOMER_STORAGE=" File ").CUSTOMER_STORAGE == "file"
    with pytest.raises(ValueError):
        Settings(CUSTOMER_STORAGE="redis")
