"""Reduce a subject's clock events into status and worked/break durations.

The reducer is deliberately lenient: it never validates that a transition is
legal. Stray events are absorbed by the rules below and credit no time.

    CLOCK_IN     open a work session at the event time. An interval that was
                 already open is discarded, not credited.
    BREAK_START  credit the open work session (if any), open a break.
    BREAK_END    credit the open break (if any), reopen work at event time.
    CLOCK_OUT    credit the open work session (if any). An open break ends
                 without break credit.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from timeclock.models.clock_event import ClockEvent, EventType
from timeclock.models.timeline import ClockStatus, TimelineState

logger = logging.getLogger(__name__)

ZERO = timedelta(0)

_STATUS_AFTER = {
    EventType.CLOCK_IN: ClockStatus.CLOCKED_IN,
    EventType.CLOCK_OUT: ClockStatus.CLOCKED_OUT,
    EventType.BREAK_START: ClockStatus.ON_BREAK,
    EventType.BREAK_END: ClockStatus.CLOCKED_IN,
}


def _elapsed(start: datetime, end: datetime) -> timedelta:
    # Clock skew or out-of-order rows must never produce negative time
    return max(ZERO, end - start)


def status_from_last_event(event: Optional[ClockEvent]) -> ClockStatus:
    """Status implied by the most recent event alone."""
    if event is None:
        return ClockStatus.CLOCKED_OUT
    return _STATUS_AFTER[event.event_type]


def reduce(events: Sequence[ClockEvent], as_of: datetime) -> TimelineState:
    """
    Fold one subject's events, sorted ascending by timestamp, into a TimelineState.

    If a work or break interval is still open after the last event it is
    projected through ``as_of``. The projection is reporting only; callers
    must not persist it as a closed total.
    """
    status = ClockStatus.CLOCKED_OUT
    worked = ZERO
    on_break = ZERO
    work_start: Optional[datetime] = None
    break_start: Optional[datetime] = None
    clocked_in_at: Optional[datetime] = None
    last_break_start: Optional[datetime] = None

    for event in events:
        at = event.timestamp
        kind = event.event_type

        if kind == EventType.CLOCK_IN:
            work_start = at
            break_start = None
            clocked_in_at = at
        elif kind == EventType.BREAK_START:
            if work_start is not None:
                worked += _elapsed(work_start, at)
            work_start = None
            break_start = at
            last_break_start = at
        elif kind == EventType.BREAK_END:
            if break_start is not None:
                on_break += _elapsed(break_start, at)
            break_start = None
            work_start = at
        elif kind == EventType.CLOCK_OUT:
            if work_start is not None:
                worked += _elapsed(work_start, at)
            work_start = None
            break_start = None

        status = _STATUS_AFTER[kind]

    open_since = None
    if status == ClockStatus.CLOCKED_IN and work_start is not None:
        open_since = work_start
        worked += _elapsed(work_start, as_of)
    elif status == ClockStatus.ON_BREAK and break_start is not None:
        open_since = break_start
        on_break += _elapsed(break_start, as_of)

    return TimelineState(
        current_status=status,
        worked_duration=worked,
        break_duration=on_break,
        open_since=open_since,
        event_count=len(events),
        clocked_in_at=clocked_in_at if status != ClockStatus.CLOCKED_OUT else None,
        last_break_start=last_break_start if status == ClockStatus.ON_BREAK else None,
        last_activity=events[-1].timestamp if events else None,
    )


def sort_events(events: Iterable[ClockEvent]) -> List[ClockEvent]:
    return sorted(events, key=lambda event: event.timestamp)


def reduce_unsorted(events: Iterable[ClockEvent], as_of: datetime) -> TimelineState:
    """Same as reduce(), for callers that cannot guarantee ascending order."""
    return reduce(sort_events(events), as_of)


def group_by_subject(events: Iterable[ClockEvent]) -> Dict[str, List[ClockEvent]]:
    """Group events per employee, each group sorted ascending by timestamp."""
    grouped: Dict[str, List[ClockEvent]] = defaultdict(list)
    for event in events:
        grouped[event.employee_id].append(event)
    return {subject_id: sort_events(subject_events) for subject_id, subject_events in grouped.items()}


def reduce_all(events: Iterable[ClockEvent], as_of: datetime) -> Dict[str, TimelineState]:
    """Reduce a mixed batch of events into one TimelineState per subject."""
    states = {
        subject_id: reduce(subject_events, as_of)
        for subject_id, subject_events in group_by_subject(events).items()
    }
    logger.debug("Reduced timelines for %d subjects as of %s", len(states), as_of.isoformat())
    return states
