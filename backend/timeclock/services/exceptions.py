class TimeclockError(Exception):
    """Base class for errors raised by the timeclock services."""

    code = "TIMECLOCK_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidCoordinate(TimeclockError):
    """Latitude/longitude out of range or not a finite number."""

    code = "INVALID_COORDINATE"


class InvalidTransition(TimeclockError):
    """A clock action is not allowed from the subject's current status."""

    code = "INVALID_TRANSITION"


class NoLocationsConfigured(TimeclockError):
    code = "NO_LOCATIONS"


class LocationNotFound(TimeclockError):
    code = "LOCATION_NOT_FOUND"


class OutOfRange(TimeclockError):
    """The observed position is outside the geofence of the target site."""

    code = "OUT_OF_RANGE"


class NoWorkedHours(TimeclockError):
    code = "NO_WORKED_HOURS"


class TimesheetNotFound(TimeclockError):
    code = "TIMESHEET_NOT_FOUND"
    status_code = 404


class TimesheetConflict(TimeclockError):
    """An approved or pending timesheet already covers part of the period."""

    code = "TIMESHEET_CONFLICT"
    status_code = 409


class TimesheetNotPending(TimeclockError):
    code = "TIMESHEET_NOT_PENDING"


class ReviewNotAllowed(TimeclockError):
    """The reviewer may not approve or reject this timesheet."""

    code = "REVIEW_NOT_ALLOWED"
    status_code = 403
