import os
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from timeclock.models.clock_event import ClockEvent, EventType
from timeclock.schemas.timesheet import BreakPeriod, DailyHours, TimesheetSummary, WeeklyTimesheet
from timeclock.services.exceptions import NoWorkedHours
from timeclock.services.timeline_service import reduce, sort_events

DEFAULT_REGULAR_HOURS_PER_DAY = float(os.getenv("REGULAR_HOURS_PER_DAY", "8"))


def split_by_day(events: Iterable[ClockEvent]) -> Dict[date, List[ClockEvent]]:
    """Bucket events by the calendar day of their (UTC) timestamp, ascending."""
    days: Dict[date, List[ClockEvent]] = defaultdict(list)
    for event in sort_events(events):
        days[event.timestamp.date()].append(event)
    return dict(days)


def _day_as_of(day: date, as_of: datetime) -> datetime:
    # Past days are projected to their last instant, never beyond
    end_of_day = datetime.combine(day, time.max, tzinfo=as_of.tzinfo)
    return min(end_of_day, as_of)


def _breaks(day_events: List[ClockEvent]) -> List[BreakPeriod]:
    periods: List[BreakPeriod] = []
    for event in day_events:
        if event.event_type == EventType.BREAK_START:
            periods.append(BreakPeriod(start=event.timestamp))
        elif event.event_type == EventType.BREAK_END and periods and periods[-1].end is None:
            periods[-1].end = event.timestamp
    return periods


def summarize_day(day: date, day_events: List[ClockEvent], as_of: datetime) -> DailyHours:
    state = reduce(day_events, _day_as_of(day, as_of))

    clock_ins = [e.timestamp for e in day_events if e.event_type == EventType.CLOCK_IN]
    clock_outs = [e.timestamp for e in day_events if e.event_type == EventType.CLOCK_OUT]

    return DailyHours(
        date=day,
        hours=round(state.worked_hours, 2),
        break_hours=round(state.break_hours, 2),
        first_clock_in=clock_ins[0] if clock_ins else None,
        last_clock_out=clock_outs[-1] if clock_outs else None,
        breaks=_breaks(day_events),
    )


def daily_breakdown(events: Iterable[ClockEvent], as_of: datetime) -> List[DailyHours]:
    return [
        summarize_day(day, day_events, as_of)
        for day, day_events in sorted(split_by_day(events).items())
    ]


def build_weekly_timesheet(
    events: Iterable[ClockEvent],
    week_start: date,
    as_of: datetime,
) -> WeeklyTimesheet:
    """Seven consecutive days from ``week_start``; days without events have zero hours."""
    week = [week_start + timedelta(days=offset) for offset in range(7)]
    by_day = {row.date: row for row in daily_breakdown(events, as_of)}

    daily = [by_day.get(day) or DailyHours(date=day) for day in week]

    return WeeklyTimesheet(
        start_date=week[0],
        end_date=week[-1],
        total_hours=round(sum(row.hours for row in daily), 2),
        daily_hours=daily,
    )


def summarize_period(
    events: Iterable[ClockEvent],
    start_date: date,
    end_date: date,
    as_of: datetime,
    regular_hours_per_day: Optional[float] = None,
) -> TimesheetSummary:
    """
    Total, regular and overtime hours for a period.

    Hours above ``regular_hours_per_day`` on a single day count as overtime.

    Raises:
        NoWorkedHours: if the period has no worked time at all
    """
    threshold = DEFAULT_REGULAR_HOURS_PER_DAY if regular_hours_per_day is None else regular_hours_per_day

    in_period = [e for e in events if start_date <= e.timestamp.date() <= end_date]
    days = daily_breakdown(in_period, as_of)

    total = regular = overtime = breaks = 0.0
    for row in days:
        total += row.hours
        breaks += row.break_hours
        regular += min(row.hours, threshold)
        overtime += max(0.0, row.hours - threshold)

    if total == 0:
        raise NoWorkedHours(
            "No worked hours found for the selected period",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    return TimesheetSummary(
        start_date=start_date,
        end_date=end_date,
        total_hours=round(total, 2),
        regular_hours=round(regular, 2),
        overtime_hours=round(overtime, 2),
        break_hours=round(breaks, 2),
        days_worked=sum(1 for row in days if row.hours > 0),
    )
