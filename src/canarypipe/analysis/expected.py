"""Expectation predicates for analysis checks.

Metrics and log checks carry their expectation as a string such as
``"< 0.01"`` or ``">= 99.5"``; HTTP checks carry an expected status code
(``"200"``) or status class (``"2xx"``). Providers use these helpers to
turn a raw value into a pass/fail answer, and the pipeline validator uses
them to reject unparseable expectations before a run starts.

Example:
    >>> parse_expectation("< 0.01").matches(0.002)
    True
    >>> parse_status_expectation("2xx").matches(503)
    False
"""

from __future__ import annotations

import operator
import re
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ComparisonOperator = Literal["<", "<=", ">", ">=", "==", "!="]

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

_EXPECTATION_PATTERN = re.compile(
    r"^\s*(<=|>=|==|!=|<|>)\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*$"
)
_STATUS_CODE_PATTERN = re.compile(r"^\s*([1-5])(\d\d|xx|XX)\s*$")


class Expectation(BaseModel):
    """A numeric comparison a query result must satisfy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operator: ComparisonOperator
    value: float

    def matches(self, observed: float) -> bool:
        """Whether an observed value satisfies the expectation."""
        return _OPERATORS[self.operator](observed, self.value)

    def __str__(self) -> str:
        return f"{self.operator} {self.value:g}"


class StatusExpectation(BaseModel):
    """An expected HTTP status code or status class.

    Attributes:
        status_class: Leading digit of the accepted class (2 for "2xx").
        code: Exact accepted code, or None when a whole class is accepted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_class: int = Field(..., ge=1, le=5)
    code: int | None = Field(default=None, ge=100, le=599)

    def matches(self, status: int) -> bool:
        """Whether a response status satisfies the expectation."""
        if self.code is not None:
            return status == self.code
        return status // 100 == self.status_class


def parse_expectation(text: str) -> Expectation:
    """Parse a comparison such as ``"<= 5"``.

    Args:
        text: Operator followed by a number.

    Returns:
        The parsed Expectation.

    Raises:
        ValueError: If the text is not a supported comparison.
    """
    match = _EXPECTATION_PATTERN.match(text)
    if match is None:
        raise ValueError(
            f"invalid expectation {text!r}: expected '<op> <number>' "
            f"with op one of {', '.join(_OPERATORS)}"
        )
    op, number = match.groups()
    return Expectation(operator=op, value=float(number))


def parse_status_expectation(text: str) -> StatusExpectation:
    """Parse an expected HTTP status.

    An empty string accepts any 2xx response.

    Args:
        text: Status code ("200"), class ("2xx") or "".

    Returns:
        The parsed StatusExpectation.

    Raises:
        ValueError: If the text is neither a status code nor a class.

    Examples:
        >>> parse_status_expectation("204").code
        204
        >>> parse_status_expectation("").status_class
        2
    """
    if not text.strip():
        return StatusExpectation(status_class=2)
    match = _STATUS_CODE_PATTERN.match(text)
    if match is None:
        raise ValueError(
            f"invalid expected status {text!r}: use a code like 200 or a class like 2xx"
        )
    leading, rest = match.groups()
    if rest.lower() == "xx":
        return StatusExpectation(status_class=int(leading))
    return StatusExpectation(status_class=int(leading), code=int(leading + rest))


__all__ = [
    "Expectation",
    "StatusExpectation",
    "parse_expectation",
    "parse_status_expectation",
]
