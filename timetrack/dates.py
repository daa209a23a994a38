"""Human date/time parsing.

Accepted forms, interpreted in ``tz`` (the system timezone when None):

    now                 the current moment
    HH:MM               that time on the default date
    YYYY-MM-DD          that date at the default time
    YYYY-MM-DD HH:MM    fully specified

``parse_datetime`` never reads the clock, "now" is passed in by the caller.
"""

from datetime import date, datetime, time, timedelta, tzinfo

from timetrack.errors import INVALID_DATETIME, Result, TimeTrackError, err, ok

YMD_FORMAT = "%Y-%m-%d"
HM_FORMAT = "%H:%M"
YMDHM_FORMAT = f"{YMD_FORMAT} {HM_FORMAT}"

START_OF_DAY = time(0, 0, 0)
END_OF_DAY = time(23, 59, 59)


def local_now() -> datetime:
    """Current time as an aware datetime in the system timezone."""
    return datetime.now().astimezone()


def localize(naive: datetime, tz: tzinfo | None) -> datetime:
    """Attach ``tz`` to a naive datetime (system timezone when None)."""
    if tz is None:
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def to_local(timestamp: int, tz: tzinfo | None = None) -> datetime:
    if tz is None:
        return datetime.fromtimestamp(timestamp).astimezone()
    return datetime.fromtimestamp(timestamp, tz)


def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[int, int]:
    """First and last second of ``day`` as Unix timestamps."""
    start = localize(datetime.combine(day, START_OF_DAY), tz)
    end = localize(datetime.combine(day, END_OF_DAY), tz)
    return int(start.timestamp()), int(end.timestamp())


def days_before(day: date, count: int) -> date:
    return day - timedelta(days=count)


def parse_datetime(
    text: str,
    now: datetime,
    default_date: date | None = None,
    default_time: time | None = None,
    tz: tzinfo | None = None,
) -> Result[datetime, TimeTrackError]:
    """Parse ``text`` into an aware datetime.

    Missing parts come from ``default_date`` / ``default_time``, which fall
    back to the date and time of ``now``.
    """
    text = text.strip()
    if text == "now":
        return ok(now)

    default_date = default_date or now.date()
    default_time = default_time if default_time is not None else now.time().replace(microsecond=0)

    try:
        if len(text) == 5:
            parsed_time = datetime.strptime(text, HM_FORMAT).time()
            naive = datetime.combine(default_date, parsed_time)
        elif len(text) == 10:
            parsed_date = datetime.strptime(text, YMD_FORMAT).date()
            naive = datetime.combine(parsed_date, default_time)
        else:
            naive = datetime.strptime(text, YMDHM_FORMAT)
    except ValueError as e:
        return err(
            TimeTrackError(
                code=INVALID_DATETIME,
                message=f"Could not parse date/time '{text}': {e}",
                context={"text": text},
            )
        )

    return ok(localize(naive, tz))
