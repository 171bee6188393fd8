"""Shared fixtures for ResourceDB tests."""

import pytest

from resourcedb.errors import DeadlineExceededError


class CountdownDeadline:
    """Deadline stand-in that passes a fixed number of checks, then expires.

    Lets tests fire a deadline in the middle of an operation without
    relying on wall-clock timing.
    """

    def __init__(self, checks: int) -> None:
        self.checks_left = checks

    @property
    def expired(self) -> bool:
        return self.checks_left <= 0

    def remaining(self) -> float:
        return 0.0 if self.expired else 60.0

    def check(self, operation: str) -> None:
        if self.expired:
            raise DeadlineExceededError(operation)
        self.checks_left -= 1


@pytest.fixture
def countdown_deadline():
    """Factory for CountdownDeadline."""
    return CountdownDeadline
