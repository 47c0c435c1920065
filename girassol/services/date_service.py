"""
Date calculation and bucketing service.
Handles ISO day keys, rolling windows, month grids and reminder times.
Every function takes an optional "now" so results are deterministic in tests.
"""
import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta, date
from typing import List, Optional, Union

from girassol.exceptions import InvalidTimeFormatException, DateParseException


@dataclass
class MonthGrid:
    """Calendar layout of a month with weeks starting on Sunday"""
    year: int
    month: int
    leading_blanks: int
    days: List[int] = field(default_factory=list)


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def today(now: Optional[datetime] = None) -> date:
        """
        Get the reference date.

        Args:
            now: Injected current time; wall clock when omitted

        Returns:
            Calendar date of now
        """
        if now is None:
            now = datetime.now()
        return now.date()

    @staticmethod
    def to_iso_date(value: Union[date, datetime]) -> str:
        """Format a date or datetime as its YYYY-MM-DD day key"""
        if isinstance(value, datetime):
            value = value.date()
        return value.isoformat()

    @staticmethod
    def last_n_days(n: int, anchor: Optional[date] = None) -> List[str]:
        """
        Get the trailing window of day keys ending at anchor.

        Args:
            n: Window length in days
            anchor: Last day of the window (defaults to today)

        Returns:
            ISO dates, oldest first, anchor included
        """
        if n <= 0:
            return []
        if anchor is None:
            anchor = DateService.today()
        return [
            (anchor - timedelta(days=offset)).isoformat()
            for offset in range(n - 1, -1, -1)
        ]

    @staticmethod
    def month_grid(year: int, month: int) -> MonthGrid:
        """
        Build the calendar grid of a month.

        The 1st is placed at the offset equal to its weekday, counting
        Sunday as 0. Example: a month starting on a Wednesday has
        three leading blank cells.

        Args:
            year: Four digit year
            month: Month number (1-12)

        Returns:
            MonthGrid with the blank-cell count and day numbers
        """
        first_weekday, days_in_month = calendar.monthrange(year, month)
        # calendar counts Monday as 0
        leading_blanks = (first_weekday + 1) % 7
        return MonthGrid(
            year=year,
            month=month,
            leading_blanks=leading_blanks,
            days=list(range(1, days_in_month + 1)),
        )

    @staticmethod
    def parse_time(time_str: str) -> tuple[int, int]:
        """
        Parse time string into hour and minute.

        Args:
            time_str: Time string in "HH:MM" format

        Returns:
            Tuple of (hour, minute)

        Raises:
            InvalidTimeFormatException: If time string is invalid
        """
        try:
            parts = time_str.split(":")
            if len(parts) != 2:
                raise ValueError(time_str)
            hour = int(parts[0])
            minute = int(parts[1])
        except (ValueError, AttributeError):
            raise InvalidTimeFormatException(str(time_str))

        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise InvalidTimeFormatException(time_str)
        return hour, minute

    @staticmethod
    def is_time_reached(now: datetime, time_str: str) -> bool:
        """Check whether the wall-clock time of now is at or past HH:MM"""
        hour, minute = DateService.parse_time(time_str)
        return now.hour * 60 + now.minute >= hour * 60 + minute

    @staticmethod
    def parse_legacy_date(raw_value) -> str:
        """
        Convert a slash-separated day/month/year date into YYYY-MM-DD.

        The components are reversed ("25/12/2025" -> "2025-12-25") and the
        result must be a real calendar date.

        Raises:
            DateParseException: If the value cannot be converted
        """
        if not isinstance(raw_value, str) or not raw_value.strip():
            raise DateParseException(raw_value)

        parts = list(reversed(raw_value.strip().split("/")))
        if len(parts) != 3:
            raise DateParseException(raw_value)
        try:
            year, month, day = (int(part) for part in parts)
            parsed = date(year, month, day)
        except ValueError:
            raise DateParseException(raw_value)
        return parsed.isoformat()
