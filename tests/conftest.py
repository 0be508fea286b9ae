"""Root-level test configuration for canarypipe.

Registers the ``requirement`` traceability marker and isolates the
process-wide settings and tracer between tests.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from canarypipe.config import reset_settings
from canarypipe.telemetry.tracing import reset_tracer


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "requirement(id): Mark test as covering a specific requirement",
    )


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop cached settings and tracers so tests never see each other's state."""
    for var in (
        "CANARYPIPE_LOG_LEVEL",
        "CANARYPIPE_JSON_LOGS",
        "CANARYPIPE_DEFAULT_CHECK_INTERVAL",
        "CANARYPIPE_DEFAULT_QUERY_TIMEOUT",
        "CANARYPIPE_RESTART_POLL_INTERVAL",
        "CANARYPIPE_DEFAULT_TERRAFORM_WORKSPACE",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    reset_tracer()
    yield
    reset_settings()
    reset_tracer()
