"""Pytest configuration for shared test markers."""

from pathlib import Path

import pytest


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: end-to-end pipeline tests that drive data sources through the aggregator.",
    )


def _is_integration_test(item) -> bool:
    path = getattr(item, "path", None)
    if path is None:
        path = Path(str(getattr(item, "fspath", "")))
    return "integration" in Path(str(path)).parts


def pytest_collection_modifyitems(config, items):
    for item in items:
        if _is_integration_test(item):
            item.add_marker(pytest.mark.integration)
