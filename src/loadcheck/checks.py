"""Named boolean checks evaluated against each response."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from loadcheck._internal.types import CheckResults

STATUS_OK = "status 200"
BODY_NOT_EMPTY = "body not empty"


@dataclass(frozen=True)
class Check:
    """A named assertion over ``(status_code, body_length)``.

    Attributes:
        name: Label used in the summary.
        predicate: Returns True when the response passes.
    """

    name: str
    predicate: Callable[[int, int], bool]

    def __call__(self, status_code: int, body_length: int) -> bool:
        return bool(self.predicate(status_code, body_length))


DEFAULT_CHECKS: tuple[Check, ...] = (
    Check(STATUS_OK, lambda status, _length: status == 200),
    Check(BODY_NOT_EMPTY, lambda _status, length: length > 0),
)


def evaluate_checks(
    checks: Sequence[Check],
    status_code: int,
    body_length: int,
) -> CheckResults:
    """Evaluate every check against a completed response.

    Args:
        checks: Checks to run, in report order.
        status_code: HTTP status of the response.
        body_length: Number of body bytes received.

    Returns:
        Mapping of check name to pass/fail.
    """
    return {check.name: check(status_code, body_length) for check in checks}


def failed_checks(checks: Sequence[Check]) -> CheckResults:
    """Return an all-failed result, used when no response was received."""
    return {check.name: False for check in checks}
