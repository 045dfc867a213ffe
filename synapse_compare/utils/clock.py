"""
Clock and report naming utilities.

Report file names carry a UTC timestamp. The clock is injected so tests can
pin the instant and assert on exact file names.
"""

from datetime import datetime, timezone
from typing import Callable, Optional


class Clock:
    """Source of the current UTC instant."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a single instant."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


class ReportNamer:
    """
    Builds report file names from a clock reading.

    A namer captures its stamp once, so every artifact written for one batch
    shares the same suffix.
    """

    STAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
    DATE_FORMAT = "%Y-%m-%d"

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or Clock()
        self._stamp: Optional[str] = None
        self._date: Optional[str] = None

    def _capture(self) -> None:
        if self._stamp is None:
            instant = self.clock.now().astimezone(timezone.utc)
            self._stamp = instant.strftime(self.STAMP_FORMAT)
            self._date = instant.strftime(self.DATE_FORMAT)

    @property
    def stamp(self) -> str:
        self._capture()
        return self._stamp  # type: ignore[return-value]

    @property
    def date(self) -> str:
        self._capture()
        return self._date  # type: ignore[return-value]

    def row_report(self, kind: str) -> str:
        return f"{kind}-comparison-{self.stamp}.csv"

    def summary(self) -> str:
        return f"comparison-summary-{self.stamp}.json"

    def merged_csv(self) -> str:
        return f"detailed-comparison-{self.stamp}.csv"

    def merged_json(self) -> str:
        return f"detailed-comparison-{self.stamp}.json"

    def load_records_csv(self) -> str:
        return f"basic-comparison-{self.date}.csv"

    def load_records_json(self) -> str:
        return "comparison-results.json"


def iso_timestamp(now: Optional[Callable[[], datetime]] = None) -> str:
    """Current UTC timestamp in ISO format with a Z suffix."""
    current = now() if now else datetime.now(timezone.utc)
    return current.isoformat().replace("+00:00", "Z")
