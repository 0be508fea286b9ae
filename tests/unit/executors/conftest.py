"""Fixtures for executor unit tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from canarypipe.config import RunnerSettings
from canarypipe.decoder import decode_pipeline
from canarypipe.executors.approval import ApprovalBroker
from canarypipe.executors.base import StageContext
from canarypipe.plugins import PluginSet

ContextFactory = Callable[..., StageContext]


@pytest.fixture
def make_context(plugins: PluginSet, settings: RunnerSettings) -> ContextFactory:
    """Build a StageContext for stage ``index`` of a pipeline record.

    Keyword arguments override StageContext fields.
    """

    def factory(record: dict[str, Any], index: int = 0, **overrides: Any) -> StageContext:
        values: dict[str, Any] = {
            "pipeline": decode_pipeline(record),
            "stage_index": index,
            "plugins": plugins,
            "settings": settings,
            "approvals": ApprovalBroker(),
        }
        values.update(overrides)
        return StageContext(**values)

    return factory
