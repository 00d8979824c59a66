"""Clock protocol - the time source of the scheduler."""

from datetime import datetime
from typing import Protocol, runtime_checkable

from django.utils import timezone


@runtime_checkable
class Clock(Protocol):
    """
    Protocol for reading the current instant.

    The scheduler asks its clock instead of calling timezone.now()
    directly, so tests can drive jobs with a fake clock:

        class FakeClock:
            def __init__(self, now):
                self.current = now

            def now(self):
                return self.current
    """

    def now(self) -> datetime:
        """Return the current aware datetime."""
        ...


class SystemClock:
    """Wall clock (django.utils.timezone.now)."""

    def now(self) -> datetime:
        return timezone.now()
