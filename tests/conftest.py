"""Shared fixtures, pytest markers, and env-var-based skip logic."""

import os

import pytest


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "e2e: needs a real TiVo and broker (TIVOTOMQTT_TEST_E2E=1)"
    )


def pytest_collection_modifyitems(config, items):
    # e2e is opt-in; set TIVOTOMQTT_TEST_E2E=1 to enable
    for item in items:
        if "e2e" in item.keywords and not os.environ.get("TIVOTOMQTT_TEST_E2E"):
            item.add_marker(
                pytest.mark.skip(reason="Set TIVOTOMQTT_TEST_E2E=1 to run")
            )
