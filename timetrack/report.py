"""Log report: checkpoints in a time window, grouped by local day."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, tzinfo

from timetrack.database import Database
from timetrack.dates import to_local
from timetrack.durations import TimedCheckpoint, billable_total, durations_in_range
from timetrack.errors import Result, TimeTrackError, err, not_found, ok


@dataclass
class DayLog:
    """Checkpoints of one calendar day and their billable total (seconds)."""

    day: date
    entries: list[TimedCheckpoint] = field(default_factory=list)
    total: int = 0


@dataclass
class LogReport:
    start: int
    end: int
    days: list[DayLog] = field(default_factory=list)
    total: int = 0
    filter_tags: tuple[str, ...] = ()

    @property
    def entries(self) -> list[TimedCheckpoint]:
        return [entry for day in self.days for entry in day.entries]


def build_log(
    db: Database,
    start: int,
    end: int,
    filter_tags: Sequence[str] = (),
    tz: tzinfo | None = None,
) -> Result[LogReport, TimeTrackError]:
    """Collect checkpoints in [start, end].

    With ``filter_tags`` only checkpoints tagged with one of those short
    names are kept. Durations still run to the next checkpoint overall,
    filtered out or not.
    """
    filter_ids = set()
    for short_name in filter_tags:
        tag_id = db.registry.lookup_by_short_name(short_name)
        if tag_id is None:
            return err(not_found("tag", short_name))
        filter_ids.add(tag_id)

    report = LogReport(start=start, end=end, filter_tags=tuple(filter_tags))
    for entry in durations_in_range(db.store, start, end):
        if filter_ids and db.registry.effective_tag_id(entry.checkpoint.tag_id) not in filter_ids:
            continue
        day = to_local(entry.timestamp, tz).date()
        if not report.days or report.days[-1].day != day:
            report.days.append(DayLog(day=day))
        report.days[-1].entries.append(entry)

    for day_log in report.days:
        day_log.total = billable_total(day_log.entries, db.registry)
    report.total = sum(day_log.total for day_log in report.days)
    return ok(report)
