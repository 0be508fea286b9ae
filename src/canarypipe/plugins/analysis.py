"""AnalysisProvider ABC for metrics, log and HTTP check providers.

A provider answers one question per call: did this check pass? How the
query travels over the wire is the provider's concern. Any exception
raised by a provider is counted as one failed check by the analysis
evaluator, the same as a ``False`` answer.

Providers usually support a single kind of check; the defaults for the
other kinds raise AdapterError, which the evaluator also counts as a
failed check.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from canarypipe.errors import AdapterError

if TYPE_CHECKING:
    from canarypipe.schemas.options import AnalysisHTTP, AnalysisLog, AnalysisMetrics


class AnalysisProvider(ABC):
    """Abstract base class for analysis providers.

    Concrete providers must implement the ``name`` property and override
    at least one of query_metric(), query_log() or query_http().

    Example:
        >>> class PrometheusProvider(AnalysisProvider):
        ...     @property
        ...     def name(self) -> str:
        ...         return "prometheus"
        ...
        ...     async def query_metric(self, check: AnalysisMetrics) -> bool:
        ...         value = await self._client.query(check.query)
        ...         return parse_expectation(check.expected).matches(value)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name referenced by analysis checks."""
        ...

    async def query_metric(self, check: AnalysisMetrics) -> bool:
        """Evaluate a metrics query against its expectation."""
        raise AdapterError("query_metric", f"provider {self.name} does not support metrics")

    async def query_log(self, check: AnalysisLog) -> bool:
        """Evaluate a log query against its expectation."""
        raise AdapterError("query_log", f"provider {self.name} does not support logs")

    async def query_http(self, check: AnalysisHTTP) -> bool:
        """Send an HTTP check and compare the response with its expectation."""
        raise AdapterError("query_http", f"provider {self.name} does not support http")


__all__ = ["AnalysisProvider"]
