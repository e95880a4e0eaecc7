"""Shared fixtures for orgclock tests."""

from datetime import datetime, timedelta

import pytest

from orgclock.config import Settings
from orgclock.document import TextDocument


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2023, 1, 1, 9, 0))


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def messages():
    return []


def make_document(*lines: str) -> TextDocument:
    return TextDocument(list(lines))
