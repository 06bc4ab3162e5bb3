from __future__ import annotations

import datetime
from typing import Optional


class WeekWindow:
    """Monday-start week spanning Monday 00:00:00.000 to Sunday 23:59:59.999."""

    DAYS = 7

    def __init__(self, start: datetime.datetime) -> None:
        self.start = start.replace(hour=0, minute=0, second=0, microsecond=0)

    @classmethod
    def for_date(cls, pivot: datetime.date | datetime.datetime) -> "WeekWindow":
        """Return the week containing ``pivot``."""
        if not isinstance(pivot, datetime.datetime):
            pivot = datetime.datetime.combine(pivot, datetime.time.min)
        monday = pivot - datetime.timedelta(days=pivot.weekday())
        return cls(monday)

    @property
    def end(self) -> datetime.datetime:
        last_day = self.start + datetime.timedelta(days=self.DAYS - 1)
        return last_day.replace(hour=23, minute=59, second=59, microsecond=999000)

    def shift(self, weeks: int) -> "WeekWindow":
        try:
            return WeekWindow(self.start + datetime.timedelta(days=self.DAYS * weeks))
        except OverflowError as e:
            raise ValueError(f"week offset out of range: {weeks}") from e

    def contains(self, moment: datetime.datetime) -> bool:
        return self.start <= moment <= self.end

    def date_range(self) -> tuple[str, str]:
        """Return ``(start, end)`` formatted as ``YYYY-MM-DD`` for range queries."""
        return self.start.date().isoformat(), self.end.date().isoformat()

    def label(self) -> str:
        """Return a short label such as ``Mar 4 - Mar 10``."""
        start, end = self.start, self.end
        return f"{start:%b} {start.day} - {end:%b} {end.day}"

    @staticmethod
    def parse_scheduled_date(value: str) -> Optional[datetime.datetime]:
        """Parse an ISO date or date-time into a naive local datetime.

        Date-only strings map to local midnight. Offset-aware values are
        converted to local time. Results are truncated to milliseconds and
        ``None`` is returned when ``value`` is not ISO.
        """
        if not value:
            return None
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            if len(text) == 10:
                return datetime.datetime.combine(
                    datetime.date.fromisoformat(text), datetime.time.min
                )
            moment = datetime.datetime.fromisoformat(text)
        except ValueError:
            return None
        if moment.tzinfo is not None:
            moment = moment.astimezone().replace(tzinfo=None)
        # millisecond precision, matching the week end
        return moment.replace(microsecond=moment.microsecond // 1000 * 1000)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, WeekWindow) and other.start == self.start

    def __hash__(self) -> int:
        return hash(self.start)

    def __repr__(self) -> str:
        return f"WeekWindow({self.start.date().isoformat()})"
