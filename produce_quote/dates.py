from datetime import date, datetime, timezone
import re
from typing import Callable, Optional
from zoneinfo import ZoneInfo

ROC_YEAR_OFFSET = 1911
MONDAY = 0

LOCAL_DATE_PATTERN = re.compile(r"^(\d{1,3})/(\d{2})/(\d{2})$")


class InvalidLocalDate(ValueError):
    pass


def to_local_calendar(year: int, month: int, day: int) -> str:
    roc_year = year - ROC_YEAR_OFFSET
    if not 1 <= roc_year <= 999:
        raise InvalidLocalDate(f"year {year} has no ROC representation")
    # Validates month/day before formatting.
    date(year, month, day)
    return f"{roc_year}/{month:02d}/{day:02d}"


def format_local_date(value: date) -> str:
    return to_local_calendar(value.year, value.month, value.day)


def to_gregorian(local_date: str) -> date:
    match = LOCAL_DATE_PATTERN.match(local_date or "")
    if not match:
        raise InvalidLocalDate(f"not a ROC date: {local_date!r}")
    roc_year, month, day = (int(part) for part in match.groups())
    try:
        return date(roc_year + ROC_YEAR_OFFSET, month, day)
    except ValueError as exc:
        raise InvalidLocalDate(f"no such day: {local_date!r}") from exc


def parse_local_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return to_gregorian(value)
    except InvalidLocalDate:
        return None


def is_fixed_non_trading_day(local_date: Optional[str], closed_weekday: int = MONDAY) -> bool:
    parsed = parse_local_date(local_date)
    return parsed is not None and parsed.weekday() == closed_weekday


def format_request_date(local_date: str, style: str = "roc") -> str:
    # roc: 114.12.03, gregorian: 2025/12/03
    parsed = to_gregorian(local_date)
    if style == "gregorian":
        return parsed.strftime("%Y/%m/%d")
    if style == "roc":
        return format_local_date(parsed).replace("/", ".")
    raise ValueError(f"unknown upstream date style: {style}")


def _parse_iso_timestamp(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class DateConverter:
    def __init__(
        self,
        tz_name: str = "Asia/Taipei",
        clock: Optional[Callable[[], datetime]] = None,
        closed_weekday: int = MONDAY,
    ) -> None:
        self.tz = ZoneInfo(tz_name)
        self.closed_weekday = closed_weekday
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(self.tz)

    def today(self) -> str:
        return format_local_date(self.now().date())

    def is_fixed_non_trading_day(self, local_date: Optional[str]) -> bool:
        return is_fixed_non_trading_day(local_date, self.closed_weekday)

    def provenance_stamp(self, local_date: str) -> str:
        # Same-day fetches carry a wall-clock time, backfills only their date.
        if local_date == self.today():
            return self.now().isoformat(timespec="seconds")
        return to_gregorian(local_date).isoformat()

    def format_provenance(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        if "T" not in value:
            try:
                return format_local_date(date.fromisoformat(value))
            except ValueError:
                return value
        parsed = _parse_iso_timestamp(value)
        if parsed is None:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        local = parsed.astimezone(self.tz)
        return f"{format_local_date(local.date())} {local.strftime('%H:%M:%S')}"
