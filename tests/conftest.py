"""Root conftest — shared pytest markers.

Markers
-------
unit        fast, no I/O, pure logic
integration hits the real network (set ASYNCFETCH_TEST_INTEGRATION=1)
"""

from __future__ import annotations


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, no I/O tests")
    config.addinivalue_line("markers", "integration: requires outbound network access")
