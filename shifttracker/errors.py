
class ShiftTrackerError(Exception):
    code = "SHIFT_TRACKER_ERROR"


class InvalidDate(ShiftTrackerError):
    code = "INVALID_DATE"


class InvalidTimeFormat(ShiftTrackerError):
    code = "INVALID_TIME_FORMAT"


class InvalidPeriod(ShiftTrackerError):
    code = "INVALID_PERIOD"


class MissingUser(ShiftTrackerError):
    code = "MISSING_USER"


class MonthNotFound(ShiftTrackerError):
    code = "MONTH_NOT_FOUND"


class DuplicateDateInTemplate(ShiftTrackerError):
    code = "DUPLICATE_DATE_IN_TEMPLATE"


class StorageUnavailable(ShiftTrackerError):
    code = "STORAGE_UNAVAILABLE"
