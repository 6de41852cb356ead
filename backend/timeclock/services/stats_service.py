from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping

from timeclock.models.timeline import ClockStatus, TimelineState
from timeclock.schemas.team import OrgStats


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero at ``places`` decimals (1.25 -> 1.3)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def aggregate(per_subject: Mapping[str, TimelineState], total_subjects: int) -> OrgStats:
    """
    Fold per-subject timelines into organization-level statistics.

    ``per_subject`` must only hold subjects that are part of the
    ``total_subjects`` roster; callers filter out anyone else (deactivated
    users, roles that do not clock). Subjects counted in ``total_subjects``
    but missing from ``per_subject`` are treated as clocked out. Rates and
    averages are 0 when there are no subjects at all.

    Raises:
        ValueError: ``per_subject`` holds more subjects than ``total_subjects``
    """
    if len(per_subject) > total_subjects:
        raise ValueError(
            f"{len(per_subject)} timelines for a roster of {total_subjects} subjects"
        )

    working = sum(1 for state in per_subject.values() if state.current_status == ClockStatus.CLOCKED_IN)
    on_break = sum(1 for state in per_subject.values() if state.current_status == ClockStatus.ON_BREAK)
    clocked_out = sum(1 for state in per_subject.values() if state.current_status == ClockStatus.CLOCKED_OUT)
    clocked_out += max(0, total_subjects - len(per_subject))

    total_hours = sum(state.worked_hours for state in per_subject.values())
    attended = sum(1 for state in per_subject.values() if state.event_count > 0)

    if total_subjects > 0:
        attendance_rate = attended / total_subjects * 100
        average_hours = total_hours / total_subjects
    else:
        attendance_rate = 0.0
        average_hours = 0.0

    return OrgStats(
        totalEmployees=total_subjects,
        currentlyWorking=working,
        onBreak=on_break,
        clockedOut=clocked_out,
        totalHoursToday=round_half_up(total_hours),
        averageHoursPerEmployee=round_half_up(average_hours),
        attendanceRate=round_half_up(attendance_rate),
    )
