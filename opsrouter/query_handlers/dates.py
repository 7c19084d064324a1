# dates.py
"""Date expression parsing anchored to a fixed reference date.

Expressions are tried from most to least specific: quarter, explicit range,
specific day, relative period, month, bare year. The first parser that
produces a valid period wins.
"""

import calendar
import logging
import re
from datetime import date, timedelta
from typing import Optional, Tuple

from opsrouter.core import settings
from .types import ParsedDate

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

MONTH_NUMBERS = {}
for _number, _name in enumerate(MONTH_NAMES, start=1):
    MONTH_NUMBERS[_name] = _number
    MONTH_NUMBERS[_name[:3]] = _number

MONTH_ALTERNATION = "|".join(
    list(MONTH_NAMES) + [name[:3] for name in MONTH_NAMES if name != "may"]
)
MONTH_PATTERN = re.compile(rf"\b({MONTH_ALTERNATION})\b", re.IGNORECASE)

QUARTER_WORDS = {"first": 1, "second": 2, "third": 3, "fourth": 4}

_QUARTER_NUM = re.compile(r"\bq([1-4])(?:\s+(?:of\s+)?(\d{4}))?\b")
_QUARTER_WORD = re.compile(
    r"\b(first|second|third|fourth)\s+quarter(?:\s+(?:of\s+)?(\d{4}))?\b"
)
_DAY_TO_DAY = re.compile(
    rf"({MONTH_ALTERNATION})\s+(\d{{1,2}})(?:st|nd|rd|th)?\s+to\s+"
    rf"(?:({MONTH_ALTERNATION})\s+)?(\d{{1,2}})(?:st|nd|rd|th)?(?:\s+(\d{{4}}))?"
)
_LOOSE_RANGE = re.compile(r"(?:from|between|compare)?\s*(.+?)\s+(?:to|and)\s+(.+?)(?:\s|$)")
_ISO_DATE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_LAST_N = re.compile(r"(?:last|past|previous)\s+(\d+)\s+(day|week|month|year)s?")
_YEAR = re.compile(r"\b(20\d{2}|2100)\b")


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_months(day: date, months: int) -> date:
    """Move a date by whole months, clamping to the target month's last day"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


class DateParser:
    """Parses natural-language date expressions into ParsedDate records"""

    def __init__(self, reference_date: Optional[date] = None):
        self.reference_date = reference_date or settings.REFERENCE_DATE

    def parse_date(self, text: str) -> Optional[ParsedDate]:
        """Main parsing function - tries all patterns in priority order"""
        if not text:
            return None

        for parser in (
            self.parse_quarter,
            self.parse_date_range,
            self.parse_specific_date,
            self.parse_relative_date,
            self.parse_month,
        ):
            parsed = parser(text)
            if parsed:
                return parsed

        year = self.parse_year(text)
        if year:
            return ParsedDate(
                type="year",
                start_date=date(year, 1, 1),
                end_date=date(year, 12, 31),
                year=year,
                raw_text=str(year),
            )
        return None

    def parse_quarter(self, text: str) -> Optional[ParsedDate]:
        """Parse "Q1 2024", "first quarter of 2024" or a bare "Q3" """
        lower_text = text.lower()

        match = _QUARTER_NUM.search(lower_text)
        if match:
            quarter = int(match.group(1))
        else:
            match = _QUARTER_WORD.search(lower_text)
            if not match:
                return None
            quarter = QUARTER_WORDS[match.group(1)]

        year = int(match.group(2)) if match.group(2) else self.reference_date.year
        start_month = (quarter - 1) * 3 + 1
        try:
            start_date, _ = month_bounds(year, start_month)
            _, end_date = month_bounds(year, start_month + 2)
        except ValueError:
            return None

        return ParsedDate(
            type="quarter",
            start_date=start_date,
            end_date=end_date,
            year=year,
            quarter=quarter,
            raw_text=match.group(0),
        )

    def parse_date_range(self, text: str) -> Optional[ParsedDate]:
        """Parse explicit ranges such as "january 12th to january 24th" or
        "from January to March 2024"."""
        lower_text = text.lower()

        day_match = _DAY_TO_DAY.search(lower_text)
        if day_match:
            parsed = self._day_to_day_range(day_match)
            if parsed:
                return parsed

        range_match = _LOOSE_RANGE.search(lower_text)
        if not range_match:
            return None

        start_text = range_match.group(1).strip()
        end_text = range_match.group(2).strip()
        year_in_range = self.parse_year(text)

        start_date = self._iso_date(start_text)
        end_date = self._iso_date(end_text)

        if start_date is None:
            start_month = self.parse_month(
                f"{start_text} {year_in_range}" if year_in_range else start_text
            )
            if start_month:
                start_date = start_month.start_date

        if end_date is None:
            end_month = self.parse_month(
                f"{end_text} {year_in_range}" if year_in_range else end_text
            )
            if end_month:
                end_date = end_month.end_date

        if start_date is None or end_date is None or end_date < start_date:
            return None

        return ParsedDate(
            type="range",
            start_date=start_date,
            end_date=end_date,
            raw_text=range_match.group(0),
        )

    def _day_to_day_range(self, match) -> Optional[ParsedDate]:
        start_month = MONTH_NUMBERS[match.group(1)]
        end_month = MONTH_NUMBERS[match.group(3)] if match.group(3) else start_month
        year = int(match.group(5)) if match.group(5) else self.reference_date.year

        try:
            start_date = date(year, start_month, int(match.group(2)))
            end_date = date(year, end_month, int(match.group(4)))
        except ValueError:
            logger.debug(f"Ignoring impossible day range: {match.group(0)}")
            return None

        if end_date < start_date:
            return None

        return ParsedDate(
            type="range",
            start_date=start_date,
            end_date=end_date,
            year=year,
            raw_text=match.group(0),
        )

    @staticmethod
    def _iso_date(text: str) -> Optional[date]:
        match = _ISO_DATE.search(text)
        if not match:
            return None
        try:
            return date.fromisoformat(match.group(1))
        except ValueError:
            return None

    def parse_specific_date(self, text: str) -> Optional[ParsedDate]:
        """Parse "January 15, 2025" or "15 Jan 2025" """
        lower_text = text.lower()

        for month, month_name in enumerate(MONTH_NAMES, start=1):
            names = f"{month_name}|{month_name[:3]}"
            patterns = (
                (
                    re.compile(
                        rf"\b({names})\s+(\d{{1,2}})(?:st|nd|rd|th)?(?:\s*,?\s*(\d{{4}}))?\b"
                    ),
                    2,
                ),
                (
                    re.compile(
                        rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({names})(?:\s*,?\s*(\d{{4}}))?\b"
                    ),
                    1,
                ),
            )
            for pattern, day_group in patterns:
                match = pattern.search(lower_text)
                if not match:
                    continue
                year = int(match.group(3)) if match.group(3) else self.reference_date.year
                try:
                    day = date(year, month, int(match.group(day_group)))
                except ValueError:
                    continue
                return ParsedDate(
                    type="single",
                    start_date=day,
                    end_date=day,
                    year=year,
                    month=month,
                    month_name=month_name,
                    raw_text=match.group(0),
                )

        return None

    def parse_relative_date(self, text: str) -> Optional[ParsedDate]:
        """Parse "today", "last month", "this year", "last 30 days", ..."""
        lower_text = text.lower()
        today = self.reference_date

        if "today" in lower_text:
            return ParsedDate(
                type="single", start_date=today, end_date=today, relative_period="today"
            )

        if "yesterday" in lower_text:
            yesterday = today - timedelta(days=1)
            return ParsedDate(
                type="single",
                start_date=yesterday,
                end_date=yesterday,
                relative_period="yesterday",
            )

        # Weeks run Sunday to Saturday
        days_since_sunday = (today.weekday() + 1) % 7
        if "this week" in lower_text:
            start = today - timedelta(days=days_since_sunday)
            return ParsedDate(
                type="range",
                start_date=start,
                end_date=start + timedelta(days=6),
                relative_period="this_week",
            )

        if "last week" in lower_text:
            start = today - timedelta(days=days_since_sunday + 7)
            return ParsedDate(
                type="range",
                start_date=start,
                end_date=start + timedelta(days=6),
                relative_period="last_week",
            )

        if "this month" in lower_text or "last month" in lower_text:
            is_last = "this month" not in lower_text
            anchor = shift_months(today.replace(day=1), -1) if is_last else today
            start, end = month_bounds(anchor.year, anchor.month)
            return ParsedDate(
                type="range",
                start_date=start,
                end_date=end,
                year=anchor.year,
                month=anchor.month,
                relative_period="last_month" if is_last else "this_month",
            )

        if "this year" in lower_text or "last year" in lower_text:
            is_last = "this year" not in lower_text
            year = today.year - 1 if is_last else today.year
            return ParsedDate(
                type="year",
                start_date=date(year, 1, 1),
                end_date=date(year, 12, 31),
                year=year,
                relative_period="last_year" if is_last else "this_year",
            )

        match = _LAST_N.search(lower_text)
        if match:
            num = int(match.group(1))
            unit = match.group(2)
            try:
                if unit == "day":
                    start = today - timedelta(days=num)
                elif unit == "week":
                    start = today - timedelta(weeks=num)
                elif unit == "month":
                    start = shift_months(today, -num)
                else:
                    start = shift_months(today, -12 * num)
            except (ValueError, OverflowError):
                return None
            return ParsedDate(
                type="range",
                start_date=start,
                end_date=today,
                relative_period=f"last_{num}_{unit}s",
            )

        return None

    def parse_month(self, text: str) -> Optional[ParsedDate]:
        """Parse "January", "Jan 2024" or "january, 2024".

        Without a year the reference year is assumed, even for months that
        lie after the reference date.
        """
        lower_text = text.lower()

        for month, month_name in enumerate(MONTH_NAMES, start=1):
            pattern = re.compile(
                rf"\b({month_name}|{month_name[:3]})(?:\s*,?\s*(\d{{4}}))?\b"
            )
            match = pattern.search(lower_text)
            if not match:
                continue

            year = int(match.group(2)) if match.group(2) else self.reference_date.year
            try:
                start, end = month_bounds(year, month)
            except ValueError:
                return None

            return ParsedDate(
                type="month",
                start_date=start,
                end_date=end,
                year=year,
                month=month,
                month_name=month_name,
                raw_text=match.group(0),
            )

        return None

    @staticmethod
    def parse_year(text: str) -> Optional[int]:
        """Explicit four-digit year between 2000 and 2100"""
        match = _YEAR.search(text.lower())
        return int(match.group(1)) if match else None
