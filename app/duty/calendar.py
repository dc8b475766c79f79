from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import holidays as holiday_calendars
from aws_lambda_powertools import Logger


logger = Logger(child=True)

SATURDAY = 5


class BusinessCalendar:
    """Weekdays that are neither national holidays of ``country`` nor listed in ``holidays``."""

    def __init__(
        self,
        tz_name: str,
        holidays: Iterable[date] = (),
        country: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._tz = ZoneInfo(tz_name)
        self._holidays = frozenset(holidays)
        self._national = holiday_calendars.country_holidays(country) if country else None
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def today(self) -> date:
        return self._clock().astimezone(self._tz).date()

    def is_business_day(self, day: date) -> bool:
        if day.weekday() >= SATURDAY:
            logger.info("Weekend detected", date=day.isoformat())
            return False
        if self._national is not None and day in self._national:
            logger.info("National holiday detected", date=day.isoformat(), holiday=self._national.get(day))
            return False
        if day in self._holidays:
            logger.info("Holiday detected", date=day.isoformat())
            return False
        return True
